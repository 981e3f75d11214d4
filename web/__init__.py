"""web/ -- Server-rendered HTML routes (Jinja2).

Layer rule: web/ imports from auth/, customers/, core/, api/models.py and
api/limiter.py. It never imports api/main.py; asgi.py joins the two.
"""
