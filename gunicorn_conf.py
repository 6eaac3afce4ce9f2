import multiprocessing
import os

# Run with: gunicorn -c gunicorn_conf.py todo_api.main:app

bind = os.getenv("BIND", "0.0.0.0:8000")

# (2 x cores) + 1, overridable for small containers
workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"

timeout = 120
keepalive = 5

# Request logging is done by the app; gunicorn only reports worker lifecycle
accesslog = None
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

name = "todo_api"
reload = False
