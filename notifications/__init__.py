"""
notifications — outbound mail (verification and password-reset links).
"""
