"""
Analytics module: task throughput metrics over the teams a user belongs to.
"""
