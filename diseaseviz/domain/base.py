"""
DiseaseViz Domain Models Base

SQLAlchemy 模型基类
"""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy 声明式基类"""
