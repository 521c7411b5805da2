"""Gunicorn configuration for production deployment."""

import os

# Server socket
bind = os.environ.get('GUNICORN_BIND', '0.0.0.0:8000')

# Booking operations block on SQLite's write lock, so each request gets its
# own thread; writers queue on BEGIN IMMEDIATE for up to DATABASE_TIMEOUT.
workers = int(os.environ.get('GUNICORN_WORKERS', 2))
threads = int(os.environ.get('GUNICORN_THREADS', 4))
worker_class = 'gthread'

# Timeout above DATABASE_TIMEOUT x BOOKING_MAX_RETRIES
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logging
accesslog = os.environ.get('GUNICORN_ACCESS_LOG', 'logs/gunicorn-access.log')
errorlog = os.environ.get('GUNICORN_ERROR_LOG', 'logs/gunicorn-error.log')
loglevel = 'info'
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'agenda'

# The calendar sync worker thread must start in each worker, not the master
preload_app = False

# Worker recycling
max_requests = 1000
max_requests_jitter = 50

# Security
limit_request_line = 8190
limit_request_fields = 100
limit_request_field_size = 8190
