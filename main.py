"""ASGI entry point: ``uvicorn main:app``."""

from trainerhub.main import app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("trainerhub.main:app", host="0.0.0.0", port=8000, reload=False)
