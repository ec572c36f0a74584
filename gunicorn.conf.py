# gunicorn.conf.py
import multiprocessing, os

wsgi_app = "astrochart.main:app"
bind = f"0.0.0.0:{os.getenv('PORT','5000')}"
# pure-Python chart math is CPU-bound; scale by processes, not threads
workers = int(os.getenv("WEB_CONCURRENCY", max(2, multiprocessing.cpu_count())))
threads = 1
worker_class = "sync"
timeout = int(os.getenv("GUNICORN_TIMEOUT", "60"))
graceful_timeout = 30
keepalive = 2
accesslog = "-"   # stdout
errorlog = "-"    # stderr
loglevel = os.getenv("LOG_LEVEL", "info").lower()
preload_app = True

access_log_format = (
    '%(h)s - "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" '
    'req_id:%({X-Request-ID}i)s rt:%(L)s'
)
