from .starlette_extension import (
    StarletteWorkExtension,
    UnitOfWorkMiddleware,
    current_unit_of_work,
)

__all__ = (
    "StarletteWorkExtension",
    "UnitOfWorkMiddleware",
    "current_unit_of_work",
)
