from .settings import *  # noqa: F401,F403

# Tests run against a throwaway SQLite database
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'test_restops.sqlite3',
        'TEST': {
            'NAME': None,
        },
    }
}

# Speed up password hashing in tests
PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

SECRET_KEY = 'restops-test-secret-key-with-enough-length-for-jwt'

ALLOWED_HOSTS = ['testserver', 'localhost']
