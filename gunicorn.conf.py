"""
Gunicorn configuration for the Tripbook API.

Run with:  gunicorn -c gunicorn.conf.py tripbook.main:app

Env vars that override defaults:
  PORT: TCP port to bind (default: 8000)
  WORKERS: number of worker processes (default: 1)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# The JSON data file is guarded by an in-process lock, so every write must go
# through a single worker process.
workers = int(os.environ.get("WORKERS", "1"))

worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Uploads of several 10 MB videos over a slow connection need headroom.
timeout = 120

loglevel = os.environ.get("LOG_LEVEL", "info")
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
