from fastapi import FastAPI

from dbtools import __version__
from dbtools.routers.system_endpoints import router as system_router

app = FastAPI(title="dbtools", version=__version__)

app.include_router(system_router)


@app.get("/")
async def root():
    return {"status": "online", "system": "dbtools"}
