# Bind & workers
bind = "0.0.0.0:8000"
workers = 2  # override with GUNICORN_CMD_ARGS="--workers N"
threads = 1
timeout = 30
graceful_timeout = 30
keepalive = 5

# Logs to stdout/stderr; application logs are JSON from library_auth.core.logger
accesslog = "-"
errorlog = "-"
loglevel = "info"

# Proxy headers are handled by USE_PROXYFIX in the app config
forwarded_allow_ips = "127.0.0.1"
proxy_protocol = False
wsgi_app = "wsgi:app"
