import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.ai_feature import service
from app.ai_feature.generator import TextGenerator, get_generator
from app.core import schemas
from app.core.database import get_db
from app.core.errors import (
    ExecutionError,
    GeneratorError,
    IntrospectionError,
    UnsafeQueryError,
)

router = APIRouter(tags=["Query"])

db_dep = Annotated[AsyncSession, Depends(get_db)]
generator_dep = Annotated[TextGenerator, Depends(get_generator)]


@router.post("/query", response_model=schemas.QueryResult)
async def query(payload: schemas.QueryRequest, db: db_dep, generator: generator_dep):
    """
    Translate a natural-language question to a SELECT, run it and return the
    rows plus chart metadata when a chart was requested.
    """
    question = payload.prompt.strip()
    if not question:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Empty question.")

    try:
        return await service.answer_question(db, generator, question)
    except UnsafeQueryError as error:
        logging.error(f"Blocked query for {question!r}: {error.detail()}")
        raise HTTPException(status.HTTP_403_FORBIDDEN, error.detail())
    except GeneratorError as error:
        logging.error(f"AI error for {question!r}: {error}")
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, f"AI Error: {error}")
    except (IntrospectionError, ExecutionError) as error:
        logging.error(f"Query failed for {question!r}: {error.detail()}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, error.detail())
