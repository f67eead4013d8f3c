"""
GameCollectors Backend: API Routes Package
==========================================

Route Inventory:
    - api.py:       GET  /api                      (entry point and links)
                    POST /api/register, /api/login (forwarded to the auth service)
    - games.py:     /api/games                     (game ads CRUD)
    - webhooks.py:  /api/webhooks                  (registrations, test hooks)
    - health.py:    GET  /health                   (service health check)

Routes stay thin: they read the request, call a service, and wrap the
result with links. Business rules live in services.
"""
