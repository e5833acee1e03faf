# config.py
import os

# API key expected in the "API-Key" header of every authorizer request.
API_KEY = os.getenv("VMPAY_API_KEY", "change-me")

# Shared secret placed in the SOAP envelope header (not an HTTP header)
VMACHINE_AUTH_KEY = os.getenv("VMACHINE_AUTH_KEY", API_KEY)

VMACHINE_ENDPOINT = os.getenv("VMACHINE_ENDPOINT", "https://vmachine.example.com/vmachine.svc")
VMACHINE_TIMEOUT_S = float(os.getenv("VMACHINE_TIMEOUT_S", "30"))

# The Vmachine host serves a certificate that does not validate, so TLS
# verification is OFF unless VMACHINE_VERIFY_TLS=true. This is insecure:
# traffic to the endpoint can be intercepted. Turn it on wherever possible.
VMACHINE_VERIFY_TLS = os.getenv("VMACHINE_VERIFY_TLS", "false").lower() in ("1", "true", "yes")

PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ALLOW_ORIGINS = os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
