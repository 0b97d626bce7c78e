"""
内容管理系统后端应用包。

create_app() 负责:
- 从 cmsapp.config 加载配置，可选地用传入的映射覆盖 (测试使用)
- 初始化数据库、迁移、JWT、限流、CORS 等扩展
- 配置日志、注册错误处理器、注册蓝图和 CLI 命令
"""
import os
import logging

from flask import Flask, jsonify, send_from_directory, abort, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from cmsapp.config import (
    APP_ENV, SECRET_KEY, SQLALCHEMY_TRACK_MODIFICATIONS, SQLALCHEMY_ECHO, MAX_CONTENT_LENGTH,
    JWT_SECRET_KEY, JWT_TOKEN_LOCATION, JWT_HEADER_NAME, JWT_HEADER_TYPE, JWT_ACCESS_TOKEN_EXPIRES,
    UPLOAD_FOLDER, UPLOAD_URL_PREFIX, MAX_FILE_SIZE, MAX_FILES_PER_REQUEST,
    DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE,
    LOG_LEVEL, LOG_DIR, LOG_TO_FILE,
    RATELIMIT_ENABLED, RATELIMIT_DEFAULT, RATELIMIT_STORAGE_URI,
    ADMIN_USERNAME, ADMIN_EMAIL, ADMIN_PASSWORD,
    CORS_ORIGINS,
    get_database_uri,
)

# 初始化扩展
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()

# 创建 Flask-Limiter 对象，存储位置由 RATELIMIT_STORAGE_URI 决定
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[RATELIMIT_DEFAULT],
)

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def configure_logging(app):
    """配置应用日志: 控制台 + 文件"""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    app.logger.setLevel(level)

    # 测试中会多次调用 create_app，先移除上次添加的处理器
    for handler in list(app.logger.handlers):
        if getattr(handler, 'cms_handler', False):
            app.logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.cms_handler = True
    app.logger.addHandler(console_handler)

    if app.config.get('LOG_TO_FILE'):
        log_dir = app.config.get('LOG_DIR')
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(log_dir, 'cms.log'), encoding='utf-8')
        file_handler.setFormatter(formatter)
        file_handler.cms_handler = True
        app.logger.addHandler(file_handler)

    # 降低第三方库日志级别
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=False)
    # 全局禁用 strict_slashes，需在注册路由之前设置
    app.url_map.strict_slashes = False

    app.config.from_mapping(
        APP_ENV=APP_ENV,
        SECRET_KEY=SECRET_KEY,
        SQLALCHEMY_DATABASE_URI=get_database_uri(),
        SQLALCHEMY_TRACK_MODIFICATIONS=SQLALCHEMY_TRACK_MODIFICATIONS,
        SQLALCHEMY_ECHO=SQLALCHEMY_ECHO,
        MAX_CONTENT_LENGTH=MAX_CONTENT_LENGTH,
        JWT_SECRET_KEY=JWT_SECRET_KEY,
        JWT_TOKEN_LOCATION=JWT_TOKEN_LOCATION,
        JWT_HEADER_NAME=JWT_HEADER_NAME,
        JWT_HEADER_TYPE=JWT_HEADER_TYPE,
        JWT_ACCESS_TOKEN_EXPIRES=JWT_ACCESS_TOKEN_EXPIRES,
        UPLOAD_FOLDER=UPLOAD_FOLDER,
        UPLOAD_URL_PREFIX=UPLOAD_URL_PREFIX,
        MAX_FILE_SIZE=MAX_FILE_SIZE,
        MAX_FILES_PER_REQUEST=MAX_FILES_PER_REQUEST,
        DEFAULT_PAGE_SIZE=DEFAULT_PAGE_SIZE,
        MAX_PAGE_SIZE=MAX_PAGE_SIZE,
        LOG_LEVEL=LOG_LEVEL,
        LOG_DIR=LOG_DIR,
        LOG_TO_FILE=LOG_TO_FILE,
        RATELIMIT_ENABLED=RATELIMIT_ENABLED,
        RATELIMIT_STORAGE_URI=RATELIMIT_STORAGE_URI,
        ADMIN_USERNAME=ADMIN_USERNAME,
        ADMIN_EMAIL=ADMIN_EMAIL,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
    )
    if config_object:
        app.config.from_mapping(config_object)

    configure_logging(app)

    # 初始化扩展
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    CORS(app,
         origins=CORS_ORIGINS,
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
         allow_headers=["Content-Type", "Authorization"],
         supports_credentials=False)

    from cmsapp.utils.errors import Unauthenticated
    from cmsapp.utils.error_handler import ErrorHandler
    ErrorHandler.register_handlers(app)

    # JWT 错误统一返回 unauthenticated
    @jwt.unauthorized_loader
    def unauthorized_callback(error_string):
        return jsonify(Unauthenticated('缺少访问令牌').to_dict()), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error_string):
        return jsonify(Unauthenticated('无效的访问令牌').to_dict()), 401

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify(Unauthenticated('访问令牌已过期').to_dict()), 401

    with app.app_context():
        from cmsapp import models  # noqa: F401  确保模型注册到元数据
        from cmsapp.routes.auth import auth_bp
        from cmsapp.routes.users import users_bp
        from cmsapp.routes.categories import categories_bp
        from cmsapp.routes.posts import posts_bp
        from cmsapp.routes.media import media_bp
        from cmsapp.routes.dashboard import dashboard_bp

        app.register_blueprint(auth_bp, url_prefix='/api/auth')
        app.register_blueprint(users_bp, url_prefix='/api/users')
        app.register_blueprint(categories_bp, url_prefix='/api/categories')
        app.register_blueprint(posts_bp, url_prefix='/api/posts')
        app.register_blueprint(media_bp, url_prefix='/api/media')
        app.register_blueprint(dashboard_bp, url_prefix='/api/dashboard')

    from cmsapp.utils.init_db import register_commands
    register_commands(app)

    @app.route(f'{UPLOAD_URL_PREFIX}/<path:filename>')
    def serve_upload(filename):
        upload_dir = current_app.config.get('UPLOAD_FOLDER')
        if not upload_dir:
            current_app.logger.error("UPLOAD_FOLDER not configured.")
            abort(500)
        return send_from_directory(upload_dir, filename)

    @app.route('/api/health')
    @limiter.exempt
    def health_check():
        return jsonify({
            'status': 'healthy',
            'message': '后端服务运行正常'
        }), 200

    app.logger.info("Flask 应用创建完成 (env=%s)", app.config.get('APP_ENV'))
    return app
