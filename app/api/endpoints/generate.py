import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.ai_feature import service
from app.ai_feature.generator import TextGenerator, get_generator
from app.core import schemas
from app.core.database import get_db
from app.core.errors import (
    EmptySchemaError,
    ExecutionError,
    GeneratorError,
    IntrospectionError,
    TransactionError,
    UnsafeQueryError,
)

router = APIRouter(tags=["Generation"])

db_dep = Annotated[AsyncSession, Depends(get_db)]
generator_dep = Annotated[TextGenerator, Depends(get_generator)]


@router.post(
    "/generate-data",
    response_model=schemas.GenerationResult,
    response_model_exclude_none=True,
)
async def generate_data(
    payload: schemas.GenerationRequest, db: db_dep, generator: generator_dep
):
    """
    Ask the generator for INSERT statements matching the current schema and
    apply them in one transaction. Returns a preview of the first table.
    """
    try:
        return await service.generate_data(db, generator, payload)
    except EmptySchemaError as error:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, error.detail())
    except UnsafeQueryError as error:
        logging.error(f"Generated batch blocked: {error.detail()}")
        raise HTTPException(status.HTTP_403_FORBIDDEN, error.detail())
    except GeneratorError as error:
        logging.error(f"Data generation failed: {error}")
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, error.detail())
    except (IntrospectionError, ExecutionError, TransactionError) as error:
        logging.error(f"Data generation failed: {error.detail()}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, error.detail())
