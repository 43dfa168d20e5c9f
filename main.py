from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from sqlalchemy import text
from payroll_import.database import get_db
from payroll_import.core.config import settings
from payroll_import.routers import fields, columns, mapping_configurations, column_aliases, payroll_import
from payroll_import.core.logging_config import logger

# Tables are managed by Alembic migrations (alembic upgrade head)

app = FastAPI(
    title="Payroll Import API",
    version="1.0.0",
    docs_url=None if settings.is_production else "/docs",
    redirect_slashes=False  # Disable automatic redirects to prevent POST data loss
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(fields.router, prefix="/api/fields", tags=["Fields"])
app.include_router(columns.router, prefix="/api/columns", tags=["Columns"])
app.include_router(mapping_configurations.router, prefix="/api/mapping-configurations", tags=["Mapping Configurations"])
app.include_router(column_aliases.router, prefix="/api/column-aliases", tags=["Column Aliases"])
app.include_router(payroll_import.router, prefix="/api/payroll-import", tags=["Payroll Import"])


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "connected"
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unhealthy"
        )
