"""Gunicorn production configuration."""
import os

bind = "0.0.0.0:8000"
# Bulk import sessions live in process memory, so preview and commit must
# reach the same worker. Keep one worker unless sessions move to shared storage.
workers = int(os.environ.get("WEB_CONCURRENCY", "1"))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
timeout = 120
keepalive = 5
preload_app = True
accesslog = "-"
errorlog = "-"
loglevel = "info"
wsgi_app = "catalog.main:app"
