"""Application configuration driven by environment variables.

All settings have sensible defaults for local development.
"""

import os

# ---------------------------------------------------------------------------
# gRPC server (the request layer connects to us on this address)
# ---------------------------------------------------------------------------

GRPC_SERVER_HOST: str = os.getenv("GRPC_SERVER_HOST", "0.0.0.0")
GRPC_SERVER_PORT: int = int(os.getenv("GRPC_SERVER_PORT", "50061"))

# Thread pool size for the gRPC server.  Each concurrent RPC occupies one
# thread, so this caps concurrent request handling.
GRPC_MAX_WORKERS: int = int(os.getenv("GRPC_MAX_WORKERS", "10"))

# ---------------------------------------------------------------------------
# Learner model
# ---------------------------------------------------------------------------

# Optional seed for the generation-target jitter.  Unset means a fresh
# random seed per process.
_seed = os.getenv("GENERATION_SEED")
GENERATION_SEED: int | None = int(_seed) if _seed else None

# Model calls slower than this are logged at WARNING level.
SLOW_CALL_WARN_THRESHOLD_MS: float = float(
    os.getenv("SLOW_CALL_WARN_THRESHOLD_MS", "100")
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
