"""Services Layer — handler classes that run one use case each against the DB.

Invariants:
    - Handlers take an AsyncSession (and collaborators) in __init__, never create engines
    - Business decisions delegated to core/; handlers load, decide, persist, notify
    - Emails are sent only after the owning transaction commits

Design Decisions:
    - One handler file per resource for locality (no god objects)
"""
