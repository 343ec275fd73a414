"""
Organizations module.

Organizations own teams and labels. Membership roles:
- OWNER / ADMIN manage teams, labels and the organization itself
- MEMBER can see the organization's labels and check-ins
"""
