"""
Epics module: strategic initiatives grouping tasks within a team.
"""
