# Overview: WSGI entry point (FLASK_APP=wsgi.py).

from platepos import create_app

app = create_app()
