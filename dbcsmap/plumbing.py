"""
dbcsmap.plumbing - command-line support

(c) 2024 dbcsmap contributors
licence: https://opensource.org/licenses/MIT
"""

import os
import sys
import logging
from contextlib import contextmanager


@contextmanager
def wrap_main(debug=False, verbose=False):
    """Main script context."""
    # set log level
    if debug:
        loglevel = logging.DEBUG
    elif verbose:
        loglevel = logging.INFO
    else:
        loglevel = logging.WARNING
    logging.basicConfig(level=loglevel, format='%(levelname)s: %(message)s', force=True)
    # run main script
    try:
        yield
    except BrokenPipeError:
        # happens e.g. when piping to `head`
        sys.stdout = os.fdopen(1)
    except Exception as exc:
        logging.error(exc)
        if debug:
            raise
        sys.exit(1)
