from decouple import config


class Config:
    SQLALCHEMY_DATABASE_URI = config('DATABASE_URL', default='sqlite:///slots.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Single shared operator secret, hashed at startup
    ADMIN_PASSWORD = config('ADMIN_PASSWORD', default='admin123')

    LOG_LEVEL = config('LOG_LEVEL', default='INFO')
    CORS_ORIGIN = config('CORS_ORIGIN', default='*')

    HOST = config('HOST', default='0.0.0.0')
    PORT = config('PORT', default=3001, cast=int)
    DEBUG = config('DEBUG', default=False, cast=bool)
