from flask import Flask, jsonify
from flask_migrate import Migrate

from .errors import PipelineError, build_error_payload, pipeline_error_handler
from .extensions import db, login_manager, rq

migrate = Migrate()


def create_app(config_object="config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_object)

    db.init_app(app)
    migrate.init_app(app, db, directory="alembic")
    login_manager.init_app(app)
    rq.init_app(app)

    from .models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.request_loader
    def load_user_from_token(request):
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        token = header[len("Bearer "):].strip()
        if not token:
            return None
        return User.query.filter_by(api_token=token, active=True).first()

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify(build_error_payload("unauthenticated", "Authentication required")), 401

    app.register_error_handler(PipelineError, pipeline_error_handler)

    from .blueprints.auth import bp as auth_bp
    from .blueprints.applications import bp as applications_bp
    from .blueprints.evaluations import bp as evaluations_bp
    from .blueprints.assessments import bp as assessments_bp
    from .blueprints.interviews import bp as interviews_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(applications_bp, url_prefix="/applications")
    app.register_blueprint(evaluations_bp, url_prefix="/applications")
    app.register_blueprint(assessments_bp)
    app.register_blueprint(interviews_bp, url_prefix="/interviews")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
