"""
Configuration management for the cube geometry service
Supports both development and production environments
"""

import os


class Config:
    """Base configuration"""
    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Request size (parameters are JSON, so this stays small)
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', 1024 * 1024))  # 1MB default

    # Output constraints
    MAX_OUTPUT_TRIANGLES = int(os.environ.get('MAX_OUTPUT_TRIANGLES', 2_000_000))

    # Rate limiting
    RATELIMIT_ENABLED = os.environ.get('RATELIMIT_ENABLED', 'true').lower() == 'true'
    RATELIMIT_STORAGE_URL = os.environ.get('RATELIMIT_STORAGE_URL', 'memory://')
    RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', '60 per minute')
    RATELIMIT_PROCESSING = os.environ.get('RATELIMIT_PROCESSING', '10 per minute')

    # CORS
    CORS_ENABLED = os.environ.get('CORS_ENABLED', 'false').lower() == 'true'
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE', None)  # None = stdout only

    # Geometry
    DEFAULT_PRESET = os.environ.get('DEFAULT_PRESET', 'default').lower()

    @classmethod
    def init_app(cls, app):
        pass


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False
    RATELIMIT_ENABLED = True

    # Ensure secret key is set in production
    @classmethod
    def init_app(cls, app):
        if cls.SECRET_KEY == 'dev-secret-key-change-in-production':
            import warnings
            warnings.warn(
                'SECRET_KEY not set! Using default. Set SECRET_KEY environment variable.',
                RuntimeWarning
            )


class TestingConfig(Config):
    """Testing configuration"""
    DEBUG = False
    TESTING = True
    RATELIMIT_ENABLED = False


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(name=None):
    """Get configuration by name, or based on environment"""
    env = name or os.environ.get('FLASK_ENV', 'development')
    return config.get(env, config['default'])
