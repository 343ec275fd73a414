"""
Teams module.

A team belongs to one organization. Its creator becomes LEAD; leads and
organization owners/admins manage settings and membership. A team always
keeps at least one LEAD.
"""
