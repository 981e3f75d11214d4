"""
asgi.py -- Application assembly for CrudAdmin.

This is the ONLY file that imports both api/main.py and the web routers. It
joins the two layers into a single ASGI app; api/main.py knows nothing about
the HTML routes.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app
from web.customers import router as customers_router
from web.routes import router as auth_pages_router
from web.users import router as users_router

app.include_router(auth_pages_router, tags=["Auth"])
app.include_router(users_router, tags=["Users"])
app.include_router(customers_router, tags=["Customers"])
