from typing import Iterator

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from sqlalchemy.orm import Session

from tradapi.config import Settings
from tradapi.containers import Container
from tradapi.database.connection import Database
from tradapi.services.points_ledger_service import PointsLedgerService
from tradapi.services.rating_service import RatingService


@inject
def get_database(database: Database = Depends(Provide[Container.core.database])) -> Database:
    return database


def get_db(database: Database = Depends(get_database)) -> Iterator[Session]:
    """Request-scoped session; raises StoreUnavailableError (503) when the store is disabled"""
    db = database.session()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        db.close()


@inject
def get_rating_service(
    db: Session = Depends(get_db),
    ledger: PointsLedgerService = Depends(Provide[Container.services.points_ledger_service]),
    settings: Settings = Depends(Provide[Container.core.config]),
) -> RatingService:
    return RatingService(db=db, ledger=ledger, settings=settings)
