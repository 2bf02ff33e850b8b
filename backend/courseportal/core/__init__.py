"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic (clocks are passed in or isolated in clock.py)

Design Decisions:
    - Functional core separated from imperative shell: services/ load rows, ask core/
      for a decision, then persist it
"""
