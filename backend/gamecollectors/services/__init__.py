"""
GameCollectors Backend: Services Layer
======================================

Service Inventory:
    - consoles:            Accepted console codes and their aliases
    - slug_allocator:      Unique `<console>/<title>[(n)]` identifiers
    - GameService:         Game ad CRUD
    - WebhookService:      Webhook registration CRUD and lookup by event type
    - WebhookDispatcher:   Best-effort fan-out of events to registered URLs
    - AuthServiceClient:   Register/login forwarding, behind a circuit breaker
    - UserService:         Registration rules and the local user record
    - links:               HATEOAS links for every response
"""
