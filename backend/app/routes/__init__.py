# Routes package init
"""
Mom's Yums Backend - API Routes Package
=========================================

Route Inventory:
    - extract.py:      POST /api/extract                 (read recipe card photos)
    - recipes.py:      GET/POST /api/recipes             (list/search, save)
                       GET/PATCH/DELETE /api/recipes/{id}
                       GET /api/categories
                       GET /api/files/{path}             (stored photos)
    - collections.py:  GET /api/collections/{user_id}    (public collection)
                       GET /api/share                    (share links)
    - health.py:       GET /health

Routes stay thin: read the request, call a service, return a schema.
"""
