from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional

from config import SOAP_DEBUG_LOG_SIZE
from schemas.schemas import SoapDebugEntry
from services.format_service import somente_digitos


class SoapDebugLog:
    """
    Last N SOAP request/response pairs per CNPJ, for operators debugging ERP
    pre-registrations. In memory only: lost on restart. Appends for the same
    CNPJ from concurrent calls may interleave.
    """

    def __init__(self, max_entries: int = SOAP_DEBUG_LOG_SIZE):
        self.max_entries = max_entries
        self._entries: Dict[str, Deque[SoapDebugEntry]] = {}

    def registrar(self, cnpj: str, endpoint: str, request: str,
                  status_code: Optional[int] = None, response: str = "",
                  success: bool = False, message: str = "") -> SoapDebugEntry:
        key = somente_digitos(cnpj) or cnpj
        entry = SoapDebugEntry(
            timestamp=datetime.now(timezone.utc),
            cnpj=key,
            endpoint=endpoint,
            request=request,
            status_code=status_code,
            response=response,
            success=success,
            message=message,
        )
        self._entries.setdefault(key, deque(maxlen=self.max_entries)).append(entry)
        return entry

    def listar(self, cnpj: str) -> List[SoapDebugEntry]:
        """Entries for one CNPJ, oldest first."""
        return list(self._entries.get(somente_digitos(cnpj) or cnpj, ()))

    def cnpjs(self) -> List[str]:
        return list(self._entries)

    def limpar(self, cnpj: Optional[str] = None) -> None:
        if cnpj is None:
            self._entries.clear()
        else:
            self._entries.pop(somente_digitos(cnpj) or cnpj, None)
