# main.py
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import uvicorn

from admin_router import admin_router
from config import LOG_LEVEL
from database import Base, engine
from errors import BudgetEngineError, ValidationError
from notification_router import notification_router
from router import router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="RAB Submission & Approval API")


@app.exception_handler(BudgetEngineError)
async def budget_engine_error_handler(request: Request, exc: BudgetEngineError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    error = ValidationError("Request is invalid", errors=jsonable_encoder(exc.errors()))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


app.include_router(router, prefix="/api", tags=["supervisor"])
app.include_router(admin_router, prefix="/api/admin", tags=["admin"])
app.include_router(notification_router, prefix="/api/notifications", tags=["notifications"])


@app.get("/")
def home():
    return {"message": "RAB Submission & Approval API is running"}


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
