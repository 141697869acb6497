import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response

from pulse.core.config import settings
from pulse.routers import (
    admin,
    admin_coupons,
    admin_issued_coupons,
    admin_questions,
    emails,
    issued_coupons,
    surveys,
    tenants,
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

OPENAPI_TAGS = [
    {"name": "Tenants", "description": "Public tenant landing data and coupon catalog."},
    {"name": "Coupons", "description": "Issue, check and validate coupon codes."},
    {"name": "Surveys", "description": "Fetch the survey and submit answers."},
    {"name": "Emails", "description": "Collect and verify email opt-ins."},
    {"name": "Admin Coupons", "description": "Manage coupon definitions."},
    {"name": "Admin Issued Coupons", "description": "List, edit and redeem issued codes."},
    {"name": "Admin Questions", "description": "Manage survey questions and read results."},
    {"name": "Admin", "description": "Dashboard, mailing list, staff and API keys."},
]

PUBLIC_PREFIX = "/v1/tenants/{slug}"
ADMIN_PREFIX = "/v1/tenants/{slug}/admin"

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Multi-tenant coupon and survey platform API. "
        "Visitors answer a tenant's survey and claim a unique coupon code; "
        "tenant staff manage coupons and questions and redeem codes in store."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count", "Retry-After"],
)


@app.middleware("http")
async def options_handler(request: Request, call_next):  # type: ignore[no-untyped-def]
    if request.method == "OPTIONS":
        origin = request.headers.get("origin", "*")
        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": origin,
                "Access-Control-Allow-Methods": "*",
                "Access-Control-Allow-Headers": "*",
                "Access-Control-Allow-Credentials": "true",
                "Access-Control-Max-Age": "86400",
            },
        )
    return await call_next(request)


app.include_router(admin_coupons.router, prefix=ADMIN_PREFIX, tags=["Admin Coupons"])
app.include_router(
    admin_issued_coupons.router,
    prefix=ADMIN_PREFIX,
    tags=["Admin Issued Coupons"],
)
app.include_router(admin_questions.router, prefix=ADMIN_PREFIX, tags=["Admin Questions"])
app.include_router(admin.router, prefix=ADMIN_PREFIX, tags=["Admin"])
app.include_router(tenants.router, prefix=PUBLIC_PREFIX, tags=["Tenants"])
app.include_router(issued_coupons.router, prefix=PUBLIC_PREFIX, tags=["Coupons"])
app.include_router(surveys.router, prefix=PUBLIC_PREFIX, tags=["Surveys"])
app.include_router(emails.router, prefix=PUBLIC_PREFIX, tags=["Emails"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "domain": settings.APP_DOMAIN,
        "status": "running",
    }
