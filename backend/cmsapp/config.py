import os
from dotenv import load_dotenv

# 加载.env文件
load_dotenv()

# 运行环境: development / production
APP_ENV = os.getenv('APP_ENV', 'development')

# API相关配置
API_HOST = os.getenv('API_HOST', '0.0.0.0')
API_PORT = int(os.getenv('API_PORT', 3000))
API_DEBUG = os.getenv('API_DEBUG', 'False').lower() == 'true'

# 安全相关配置
SECRET_KEY = os.getenv('SECRET_KEY', 'dev_secret_key_12345')
JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'jwt_secret_key_67890')
JWT_ACCESS_TOKEN_EXPIRES = int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES', 60 * 60 * 24))  # 1天
JWT_TOKEN_LOCATION = ['headers']
JWT_HEADER_NAME = 'Authorization'
JWT_HEADER_TYPE = 'Bearer'

# 数据库配置
DB_TYPE = os.getenv('DB_TYPE', 'sqlite')
DB_USER = os.getenv('DB_USER')
DB_PASSWORD = os.getenv('DB_PASSWORD')
DB_HOST = os.getenv('DB_HOST', 'localhost')
DB_PORT = os.getenv('DB_PORT', '5432')
DB_NAME = os.getenv('DB_NAME', 'cms')
SQLALCHEMY_TRACK_MODIFICATIONS = False
SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'False').lower() == 'true'

# 日志配置
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_DIR = os.getenv('LOG_DIR', os.path.join(os.path.abspath(os.path.dirname(os.path.dirname(__file__))), 'logs'))
LOG_TO_FILE = os.getenv('LOG_TO_FILE', 'True').lower() == 'true'

# 限流配置 (生产环境使用 Redis 存储计数)
REDIS_URL = os.getenv('REDIS_URL')
RATELIMIT_ENABLED = os.getenv('RATELIMIT_ENABLED', 'True').lower() == 'true'
RATELIMIT_DEFAULT = os.getenv('RATELIMIT_DEFAULT', '100 per 15 minutes')
RATELIMIT_STORAGE_URI = REDIS_URL or 'memory://'

# 上传文件配置
UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', os.path.join(os.path.abspath(os.path.dirname(os.path.dirname(__file__))), 'uploads'))
UPLOAD_URL_PREFIX = '/uploads'
MAX_FILE_SIZE = int(os.getenv('MAX_FILE_SIZE', 5 * 1024 * 1024))  # 单个文件默认5MB
MAX_FILES_PER_REQUEST = 10
MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', 10 * 1024 * 1024 * MAX_FILES_PER_REQUEST))

# 分页配置
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# 初始管理员 (flask seed)
ADMIN_USERNAME = os.getenv('ADMIN_USERNAME', 'admin')
ADMIN_EMAIL = os.getenv('ADMIN_EMAIL', 'admin@cms.local')
ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD', 'admin123')

# CORS配置
CORS_ORIGINS = [origin.strip() for origin in os.getenv('CORS_ORIGINS', '*').split(',') if origin.strip()]


def get_database_uri():
    """构建数据库URI"""
    if os.getenv('DATABASE_URL'):
        return os.getenv('DATABASE_URL')
    if DB_TYPE == 'postgresql':
        return f'postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}'
    # 默认使用SQLite
    return 'sqlite:///' + os.path.join(os.path.abspath(os.path.dirname(os.path.dirname(__file__))), 'cms.db')
