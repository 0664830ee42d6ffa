"""
Transfer session core.

Handles:
- Session state store and its guarded transitions
- Send and receive flow controllers
- Progress relay with stale-event rejection
- Connection liveness indicator
"""
