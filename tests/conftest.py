import os

# Must be set before config.py is imported by any test module
os.environ.setdefault("VMPAY_API_KEY", "test-api-key")
os.environ.setdefault("VMACHINE_ENDPOINT", "https://vmachine.test/vmachine.svc")
os.environ.setdefault("DATABASE_URL", "sqlite://")
