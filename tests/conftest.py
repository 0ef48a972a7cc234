from __future__ import annotations

import os

# Settings() is built at import time; give it a local, network-free setup.
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("EXTRACTION_PROVIDER", "static")
