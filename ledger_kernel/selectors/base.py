"""
Read side of the kernel.

Selectors run SELECTs for the reporting layer and hand back frozen DTOs from
``ledger_kernel.domain.dtos``, never ORM rows, so nothing downstream can
mutate ledger state through them.  They do not add, delete or flush.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):

    def __init__(self, session: Session):
        self.session = session
