"""
HTTP adapter: maps JSON requests onto ``Recommender`` operations.

Modules
-------
schemas : request/response envelopes (pydantic).
app     : ``create_app()`` FastAPI factory: routes, CORS, request logging,
          error mapping.
"""
