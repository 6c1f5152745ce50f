# wsgi.py - gunicorn entry point: gunicorn -c gunicorn.config.py wsgi:app
import gevent.monkey
gevent.monkey.patch_all()

from app import create_app  # noqa: E402
from scheduler import init_scheduler  # noqa: E402

# ----------------------
# Create app instance
# ----------------------
app = create_app()
init_scheduler(app)
