from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from database import create_db_and_tables, dispose_engine, get_db  # noqa: F401  # get_db is overridden in tests
from errors import ApiError
from observability import init_observability
from request_id_middleware import RequestIdMiddleware
from routers import (
    auth,
    companies,
    company_owners,
    job_requests,
    jobs,
    recommendations,
    school_domains,
    school_owners,
    schools,
    students,
    users,
)
from settings import get_settings

# Initialise observability before creating app
init_observability()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    logger.info("StudyLink API started")
    yield
    dispose_engine()


app = FastAPI(
    title="StudyLink",
    description="Backend API for the StudyLink school / company / student marketplace",
    version="0.1.0",
    lifespan=lifespan,
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestIdMiddleware)


# --- Error handlers --- #
@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.error)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Données invalides", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Une erreur interne est survenue"},
    )


# --- Routers --- #
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(school_domains.router, prefix="/api/school-domains", tags=["School domains"])
app.include_router(schools.router, prefix="/api/schools", tags=["Schools"])
app.include_router(school_owners.router, prefix="/api/school-owners", tags=["School owners"])
app.include_router(companies.router, prefix="/api/companies", tags=["Companies"])
app.include_router(companies.me_router, prefix="/api/company", tags=["Companies"])
app.include_router(company_owners.router, prefix="/api/company-owners", tags=["Company owners"])
app.include_router(jobs.router, prefix="/api/jobs", tags=["Jobs"])
app.include_router(job_requests.router, prefix="/api/job-requests", tags=["Job requests"])
app.include_router(students.router, prefix="/api/students", tags=["Students"])
app.include_router(students.applications_router, prefix="/api/student", tags=["Students"])
app.include_router(recommendations.router, prefix="/api/recommendations", tags=["Recommendations"])


# Add route for favicon.ico
@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=status.HTTP_204_NO_CONTENT)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
