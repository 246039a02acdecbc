# app/crud/base.py
from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import DuplicateIdempotentWrite
from app.db.base_class import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    def __init__(self, model: Type[ModelType]):
        """
        CRUD object with default methods to Create, Read, Update, Delete (CRUD).

        **Parameters**

        * `model`: A SQLAlchemy model class
        """
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return db.query(self.model).filter(self.model.id == id).first()

    def create(self, db: Session, *, obj_in: CreateSchemaType) -> ModelType:
        db_obj = self.model(**obj_in.model_dump())
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def create_if_absent(self, db: Session, *, db_obj: ModelType) -> ModelType:
        """
        Insert a record whose primary key is an idempotency key.

        Raises DuplicateIdempotentWrite when a row with the same id already
        exists, whether found up front or rejected by the unique constraint
        because a concurrent writer got there first.
        """
        if db.get(self.model, db_obj.id) is not None:
            raise DuplicateIdempotentWrite(self.model.__tablename__, db_obj.id)

        db.add(db_obj)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise DuplicateIdempotentWrite(self.model.__tablename__, db_obj.id)
        db.refresh(db_obj)
        return db_obj
