"""
TreeSpotter Backend - Services Layer
=====================================

What:  Business logic between the routes and the repositories.
How:   Services are stateless singletons. Each call receives the request's
       AsyncSession and builds the repositories it needs on top of it.

Service Inventory:
    - OrchardService: meadow/tree lifecycle and the tree_ids consistency rules
    - ImageService:   tree image upload, listing, edit, delete
    - FileService:    upload validation and on-disk storage of image files
    - AuthService:    registration and login
"""
