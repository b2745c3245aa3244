import os
import tempfile

# must run before config is imported
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="marketplace-uploads-"))
os.environ.setdefault("JWT_SECRET", "test-secret-0123456789abcdef0123456789")
os.environ.pop("DATABASE_URL", None)
