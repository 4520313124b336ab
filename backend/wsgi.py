# backend/wsgi.py
from pos_engine import create_app

app = create_app()
