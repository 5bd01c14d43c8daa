from .guide import Guide, GuideProcedure
from .procedure_status import ProcedureStatus

__all__ = ["Guide", "GuideProcedure", "ProcedureStatus"]
