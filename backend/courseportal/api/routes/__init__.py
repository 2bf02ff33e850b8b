"""Route Modules — one file per resource/concern.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Public routes live under /api/v1/public, the signed-in user's under /api/v1/me,
      back office under /api/v1/admin (every admin route depends on require_admin)
    - Routes never contain business logic (delegate to services/)
"""
