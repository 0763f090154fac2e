# rpcmount/config/default.py

API_VERSION: int = 1
LEAST_SUPPORTED_CLIENT_VERSION: str = "0.2.1"

DEFAULT_BASE_PATH: str = "/rpc"
DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 8000

LOGGER_NAME: str = "rpcmount"

# What callers see for any failure we do not want to describe
GENERIC_ERROR_MESSAGE: str = "operation failed"
INTERNAL_ERROR_MESSAGE: str = "internal server error"
