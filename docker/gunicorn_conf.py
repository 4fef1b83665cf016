"""Gunicorn/Uvicorn worker configuration.

Run with: gunicorn -c docker/gunicorn_conf.py "modbus_exporter.app:create_app()"
"""

# Serial bus locks live in process memory: more than one worker would let
# two processes drive the same bus.
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
bind = "0.0.0.0:9602"
timeout = 120
keepalive = 5

# /modbus runs in the worker's thread pool and a scrape queued on a serial bus
# lock keeps its thread until the bus is free. The pool is sized at startup from
# WORKER_THREADS (default 100, anyio's own default is 40); raise it when many
# scrapes share a slow serial bus.
