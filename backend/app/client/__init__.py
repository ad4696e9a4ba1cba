"""
Client side of the test flow: HTTP client for the enrollment API and the timed test-taking state machine.
"""
