"""
client — session handling for programs that talk to the auth API.
"""
