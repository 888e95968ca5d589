"""Real-time group chat relay.

Tracks who is present, fans chat messages out to every connected client and
replays a bounded recent-history log to clients as they (re)connect.
"""

__version__ = "0.1.0"
