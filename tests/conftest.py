import os

# Keep the module-level engine and store away from real data
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CONTENT_STORE", "memory")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("ENCRYPTION_CHUNK_SIZE", "1024")
