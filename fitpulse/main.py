import math

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from fitpulse.api.achievements import router as achievements_router
from fitpulse.api.alarms import router as alarms_router
from fitpulse.api.calories import router as calories_router
from fitpulse.api.chat import router as chat_router
from fitpulse.api.checkins import router as checkins_router
from fitpulse.api.meal_plans import router as meal_plans_router
from fitpulse.api.personal_records import router as personal_records_router
from fitpulse.api.progress import router as progress_router
from fitpulse.api.users import router as users_router
from fitpulse.api.workout_plans import router as workout_plans_router
from fitpulse.core.rate_limit import limiter, rate_limit_exceeded_handler
from fitpulse.db.session import create_tables

app = FastAPI(title="FitPulse")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Rejected inputs are echoed back; Infinity and NaN have no JSON form.
    detail = jsonable_encoder(
        exc.errors(), custom_encoder={float: lambda value: value if math.isfinite(value) else str(value)}
    )
    return JSONResponse(status_code=422, content={"detail": detail})


@app.on_event("startup")
def on_startup() -> None:
    create_tables()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api")
def api_root() -> dict[str, str]:
    return {"service": "FitPulse API", "status": "ok"}


app.include_router(users_router)
app.include_router(checkins_router)
app.include_router(workout_plans_router)
app.include_router(meal_plans_router)
app.include_router(calories_router)
app.include_router(alarms_router)
app.include_router(progress_router)
app.include_router(personal_records_router)
app.include_router(achievements_router)
app.include_router(chat_router)
