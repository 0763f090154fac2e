# rpcmount/main.py
import uvicorn
from fastapi import FastAPI

from rpcmount.config.settings import RPCSettings
from rpcmount.errors import LabeledError
from rpcmount.schemas import CallMetadata
from rpcmount.server.auth import cookie_validator
from rpcmount.server.rpc import create_rpc

settings = RPCSettings.from_env(title="rpcmount-demo")

# Demo sessions; a real host verifies a signed token here
SESSIONS = {
    "demo-token": {"user": "demo", "role": "admin"},
}


def verify_token(token: str):
    return SESSIONS.get(token)


app = FastAPI(title=settings.title)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


rpc = create_rpc(app, settings.base_path, cookie_validator(verify_token), settings=settings)


# # --- Register example methods ------------------------------------------------
@rpc.register()
def add(meta: CallMetadata, a: float, b: float) -> float:
    """Add two numbers."""
    return a + b


@rpc.register()
def divide(meta: CallMetadata, a: float, b: float) -> float:
    """Divide two numbers."""
    if b == 0:
        raise LabeledError("division_by_zero", {"dividend": str(a)})
    return a / b


@rpc.register("whoami")
async def whoami(meta: CallMetadata) -> dict:
    return dict(meta.auth)


@rpc.error_renderer("division_by_zero")
def render_division_by_zero(parameters) -> str:
    return f"cannot divide {parameters['dividend']} by zero"


if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
