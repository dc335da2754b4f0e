from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS

from storefront.app.html.cache import HtmlCache

# Singletons (initialized in app factory)
db = SQLAlchemy()
migrate = Migrate()
cors = CORS()
cache = HtmlCache()
