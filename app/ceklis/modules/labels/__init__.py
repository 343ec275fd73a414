"""
Labels module: organization-scoped tags for categorizing and filtering tasks.
Label names are unique within an organization.
"""
