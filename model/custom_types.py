# model/custom_types.py
"""
Column types shared by all models.

MySQL gets unsigned BIGINT keys; SQLite (tests) needs plain INTEGER so that
primary keys autoincrement.
"""
from sqlalchemy import BigInteger, Integer
from sqlalchemy.dialects.mysql import BIGINT


def MyBIGINT(unsigned: bool = True):
    return BigInteger().with_variant(BIGINT(unsigned=unsigned), "mysql").with_variant(Integer(), "sqlite")
