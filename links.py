from typing import Optional
from urllib.parse import urlencode

from exceptions import ValidationException

def application_link(base_url: str, process_id: Optional[str] = None) -> str:
    """Link a candidate opens to apply. Without a process id the first configured process is used."""
    url = f"{base_url.rstrip('/')}/application"
    if process_id:
        url += "?" + urlencode({"processId": process_id})
    return url

def documentation_link(base_url: str, process_id: Optional[str], candidate_id: Optional[str]) -> str:
    """Link a new hire opens to submit (or renew) documents."""
    if not process_id or not candidate_id:
        raise ValidationException("Both a process and a candidate are needed to build a documentation link.")
    query = urlencode({"processId": process_id, "candidateId": candidate_id})
    return f"{base_url.rstrip('/')}/documentation?{query}"
