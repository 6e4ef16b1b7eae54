"""
HTTP adapters (FastAPI).

Modules
-------
schemas : ScoreRequest — validated ``POST /score`` body.
routes  : APIRouter with ``GET /recommend`` and ``POST /score``.
app     : create_app() factory + exception mapping.
"""
