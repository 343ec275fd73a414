"""
Daily check-in module: one stand-up entry per user, team and day.
"""
