"""
Posts module.

- Anyone may read a post; only its author may update or delete it
- Ownership is fixed at creation
- Deletion is permanent; the audit trail keeps the title
"""
