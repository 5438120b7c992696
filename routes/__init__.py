from .contracts import contracts_bp

def register_blueprints(app):
    app.register_blueprint(contracts_bp)
