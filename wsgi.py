"""
WSGI entry point for Midnight Lace
"""
import atexit

from dotenv import load_dotenv

load_dotenv()

from midnight_lace.factory import create_app, get_services

app = create_app()

# Gunicorn/uWSGI compatibility
application = app

with app.app_context():
    atexit.register(get_services().close)

if __name__ == "__main__":
    cfg = app.config["APP_CONFIG"]
    app.run(host=cfg["APP_HOST"], port=cfg["APP_PORT"], debug=cfg["FLASK_DEBUG"])
