from flask import Flask

from storefront.modules.auth.routes import bp as auth_bp
from storefront.modules.basket.routes import api_bp as basket_api_bp
from storefront.modules.basket.routes import bp as basket_bp
from storefront.modules.catalog.routes import bp as catalog_bp
from storefront.modules.account.routes import bp as account_bp
from storefront.modules.checkout.routes import bp as checkout_bp


def register_api_blueprints(app: Flask) -> None:
    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(basket_api_bp, url_prefix="/api")

    # Root API document
    @app.get("/api")
    def api_index():
        return {
            "name": "Storefront API",
            "version": "0.1.0",
            "endpoints": {
                "auth": ["/users", "/auth/login", "/auth/logout", "/users/me"],
                "basket": ["/basket", "/basket/products", "/basket/products/<position>"],
            },
        }, 200


def register_page_blueprints(app: Flask) -> None:
    app.register_blueprint(catalog_bp)
    app.register_blueprint(basket_bp)
    app.register_blueprint(account_bp)
    app.register_blueprint(checkout_bp)
