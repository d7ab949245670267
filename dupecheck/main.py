from fastapi import FastAPI

from dupecheck.api.routers.checks import router as checks_router


app = FastAPI(title="PASS Dupe Checker", version="0.1")

app.include_router(checks_router)
