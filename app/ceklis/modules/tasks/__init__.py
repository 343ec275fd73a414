"""
Tasks module: kanban tasks owned by a team, optionally grouped under an epic.
"""
