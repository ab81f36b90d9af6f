"""
dbcsmap.data - packaged configuration

(c) 2024 dbcsmap contributors
licence: https://opensource.org/licenses/MIT
"""
