"""
TreeSpotter Backend - API Routes Package
=========================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource.

Route Inventory:
    - auth.py:     POST /register, POST /login
    - meadows.py:  /meadows CRUD, GET /meadows/{id}/trees,
                   POST /meadows/{id}/reconcile
    - trees.py:    /trees CRUD
    - images.py:   GET /trees/{id}/images, POST /trees/{id}/uploadImage,
                   PUT/DELETE /trees/images/{image_id}
    - health.py:   GET /health

Routes are thin: they resolve the current user and the request session, call
one service method and shape the response. Everything below the route runs in
the request's single transaction.
"""
