"""
Session recording for UAI.

- models: Session and Message records
- store: one JSON file per session
- registry: in-memory owner of open sessions
- transcript: prompt-marker state machine over interactive output
- interactive: pty / pipe runner feeding the transcript capture
- stats: message count and duration
"""
