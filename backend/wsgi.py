# backend/wsgi.py
from tripdesk import create_app

app = create_app()
