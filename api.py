from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from agents.document_checker import DocumentChecker, build_candidate_profile
from agents.form_generator import FormGenerator
from agents.llm import get_llm
from agents.schemas import DocumentCheckRequest, FormOptionsRequest, FormPromptRequest
from config import API_PORT, PUBLIC_BASE_URL
from db import KeyValueStore, get_store
from directories.candidates import (
    CANDIDATES_KEY,
    CHECKLIST_FIELDS,
    CandidateDirectory,
    submitted_document_labels,
)
from directories.companies import COMPANIES_KEY, CompanyDirectory
from events import ChangeNotifier, RevisionTracker
from exceptions import NotFoundError, OnboardingException, ValidationException
from forms import FormKind, application_from_submission, fields_for, resolve_form_kind, validate_submission
from links import application_link, documentation_link
from logging_config import setup_logger
from models import SUBMITTED, ApplicationForm, CandidateStatus, FormType, InterviewReview, OnboardingProcess
from validators import validate_company_name
import lifecycle

# Initialize Logger
logger = setup_logger("API")

app = FastAPI(
    title="HR Onboarding API",
    description="Companies, onboarding processes and candidates for the HR onboarding dashboard",
    version="1.0.0"
)

notifier = ChangeNotifier()
revisions = RevisionTracker(notifier, [COMPANIES_KEY, CANDIDATES_KEY])


def get_company_directory(store: KeyValueStore = Depends(get_store)) -> CompanyDirectory:
    return CompanyDirectory(store, notifier)

def get_candidate_directory(store: KeyValueStore = Depends(get_store)) -> CandidateDirectory:
    return CandidateDirectory(store, notifier)

@lru_cache(maxsize=1)
def get_form_generator() -> FormGenerator:
    return FormGenerator.from_llm(get_llm)

@lru_cache(maxsize=1)
def get_document_checker() -> DocumentChecker:
    return DocumentChecker.from_llm(get_llm)


@app.exception_handler(OnboardingException)
async def handle_onboarding_exception(request: Request, exc: OnboardingException):
    """Every domain failure goes back as {success: false, error: ...}."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path}: {exc}")
    body = {"success": False, "error": str(exc)}
    if isinstance(exc, ValidationException) and exc.errors:
        body["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=body)

@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    """Malformed request bodies and parameters get the same failure shape as domain errors."""
    errors = {}
    for error in exc.errors():
        location = [str(part) for part in error["loc"] if part not in ("body", "query", "path", "form")]
        errors.setdefault(".".join(location) or "body", error["msg"])
    field, message = next(iter(errors.items()), ("body", "Invalid request."))
    logger.warning(f"{request.method} {request.url.path}: invalid request {errors}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": f"{field}: {message}", "errors": errors},
    )


class StatusUpdate(BaseModel):
    status: CandidateStatus

class DocumentsUpdate(BaseModel):
    documents: Dict[str, str]

class RequiredDocRequest(BaseModel):
    label: str
    id: Optional[str] = None

class GenerateProcessRequest(BaseModel):
    name: Optional[str] = None
    prompt: Optional[str] = None
    options: Optional[FormOptionsRequest] = None


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "HR Onboarding API",
        "version": "1.0.0"
    }


# Companies and onboarding processes

@app.get("/companies")
async def list_companies(companies: CompanyDirectory = Depends(get_company_directory)):
    return {"success": True, "companies": [c.to_json() for c in companies.list()]}

@app.get("/companies/{company_id}")
async def get_company(company_id: str, companies: CompanyDirectory = Depends(get_company_directory)):
    return {"success": True, "company": companies.get(company_id).to_json()}

@app.post("/companies")
async def create_or_update_company(payload: Dict[str, Any], companies: CompanyDirectory = Depends(get_company_directory)):
    company = companies.create_or_update(payload)
    return {"success": True, "company": company.to_json()}

@app.delete("/companies")
async def delete_all_companies(companies: CompanyDirectory = Depends(get_company_directory)):
    companies.delete_all()
    return {"success": True}

@app.delete("/companies/{company_id}")
async def delete_company(company_id: str, companies: CompanyDirectory = Depends(get_company_directory)):
    companies.delete(company_id)
    return {"success": True}

@app.post("/companies/{company_id}/logo")
async def upload_logo(
    company_id: str,
    file: UploadFile = File(...),
    companies: CompanyDirectory = Depends(get_company_directory),
):
    content = await file.read()
    company = companies.set_logo(company_id, file.filename, content)
    return {"success": True, "company": company.to_json()}

@app.post("/companies/{company_id}/processes")
async def add_process(company_id: str, payload: Dict[str, Any], companies: CompanyDirectory = Depends(get_company_directory)):
    company = companies.add_onboarding_process(company_id, payload)
    return {"success": True, "company": company.to_json()}

@app.post("/companies/{company_id}/processes/generate")
async def generate_process(
    company_id: str,
    payload: GenerateProcessRequest,
    companies: CompanyDirectory = Depends(get_company_directory),
    generator: FormGenerator = Depends(get_form_generator),
):
    """Generates a custom application form with the LLM and adds it as a new process."""
    company = companies.get(company_id)
    validate_company_name(company.name)

    if payload.options is not None:
        options = payload.options
        if not options.company_name:
            options = options.model_copy(update={"company_name": company.name})
        form = await generator.generate_from_structured_options(options)
    elif payload.prompt:
        form = await generator.generate_from_prompt(payload.prompt)
    else:
        raise ValidationException("Provide either a prompt or structured options.")

    name = payload.name or form.form_name
    process = OnboardingProcess(
        name=name,
        application_form=ApplicationForm(name=name, type=FormType.CUSTOM, fields=form.fields),
    )
    company = companies.add_onboarding_process(company_id, process)
    return {"success": True, "company": company.to_json(), "process": process.to_json()}

@app.patch("/companies/{company_id}/processes/{process_id}")
async def update_process(
    company_id: str,
    process_id: str,
    payload: Dict[str, Any],
    companies: CompanyDirectory = Depends(get_company_directory),
):
    process = companies.update_process(company_id, process_id, payload)
    return {"success": True, "process": process.to_json()}

@app.delete("/companies/{company_id}/processes/{process_id}")
async def delete_process(company_id: str, process_id: str, companies: CompanyDirectory = Depends(get_company_directory)):
    company = companies.delete_process(company_id, process_id)
    return {"success": True, "company": company.to_json()}

@app.post("/companies/{company_id}/processes/{process_id}/required-docs")
async def add_required_doc(
    company_id: str,
    process_id: str,
    payload: RequiredDocRequest,
    companies: CompanyDirectory = Depends(get_company_directory),
):
    process = companies.add_required_doc(company_id, process_id, payload.label, payload.id)
    return {"success": True, "process": process.to_json()}

@app.delete("/companies/{company_id}/processes/{process_id}/required-docs/{doc_id}")
async def remove_required_doc(
    company_id: str,
    process_id: str,
    doc_id: str,
    companies: CompanyDirectory = Depends(get_company_directory),
):
    process = companies.remove_required_doc(company_id, process_id, doc_id)
    return {"success": True, "process": process.to_json()}

@app.post("/companies/{company_id}/processes/{process_id}/form-images")
async def upload_form_image(
    company_id: str,
    process_id: str,
    file: UploadFile = File(...),
    companies: CompanyDirectory = Depends(get_company_directory),
):
    content = await file.read()
    process = companies.add_form_image(company_id, process_id, file.filename, content)
    return {"success": True, "process": process.to_json()}

@app.delete("/companies/{company_id}/processes/{process_id}/form-images/{image_key}")
async def delete_form_image(
    company_id: str,
    process_id: str,
    image_key: str,
    companies: CompanyDirectory = Depends(get_company_directory),
):
    process = companies.remove_form_image(company_id, process_id, image_key)
    return {"success": True, "process": process.to_json()}

@app.get("/companies/{company_id}/processes/{process_id}/application-link")
async def get_application_link(company_id: str, process_id: str, companies: CompanyDirectory = Depends(get_company_directory)):
    company, process = companies.get_process(process_id)
    if company.id != company_id:
        raise NotFoundError(f"Onboarding process '{process_id}' not found for company '{company_id}'.")
    return {"success": True, "url": application_link(PUBLIC_BASE_URL, process.id)}


# Candidates

def _candidate_view(candidate) -> dict:
    return {
        **candidate.to_json(),
        "tabs": {
            "interview": lifecycle.shows_interview_tab(candidate),
            "documentation": lifecycle.shows_documentation_tab(candidate),
        },
    }

@app.get("/candidates")
async def list_candidates(
    status: Optional[CandidateStatus] = None,
    candidates: CandidateDirectory = Depends(get_candidate_directory),
):
    records = candidates.by_status(status) if status else candidates.list()
    return {"success": True, "candidates": [c.to_json() for c in records]}

@app.post("/candidates")
async def create_candidate(payload: Dict[str, Any], candidates: CandidateDirectory = Depends(get_candidate_directory)):
    candidate = candidates.create(payload)
    return {"success": True, "candidate": candidate.to_json()}

@app.get("/candidates/{candidate_id}")
async def get_candidate(candidate_id: str, candidates: CandidateDirectory = Depends(get_candidate_directory)):
    return {"success": True, "candidate": _candidate_view(candidates.get(candidate_id))}

@app.delete("/candidates/{candidate_id}")
async def delete_candidate(candidate_id: str, candidates: CandidateDirectory = Depends(get_candidate_directory)):
    candidates.delete(candidate_id)
    return {"success": True}

@app.put("/candidates/{candidate_id}/status")
async def update_candidate_status(
    candidate_id: str,
    payload: StatusUpdate,
    candidates: CandidateDirectory = Depends(get_candidate_directory),
):
    candidate = candidates.update_status(candidate_id, payload.status)
    return {"success": True, "candidate": candidate.to_json()}

@app.put("/candidates/{candidate_id}/interview-review")
async def update_interview_review(
    candidate_id: str,
    payload: InterviewReview,
    candidates: CandidateDirectory = Depends(get_candidate_directory),
):
    candidate = candidates.update_with_interview_review(candidate_id, payload)
    return {"success": True, "candidate": candidate.to_json()}

@app.put("/candidates/{candidate_id}/documents")
async def update_documents(
    candidate_id: str,
    payload: DocumentsUpdate,
    candidates: CandidateDirectory = Depends(get_candidate_directory),
):
    candidate = candidates.update_with_documents(candidate_id, payload.documents)
    return {"success": True, "candidate": candidate.to_json()}

@app.post("/candidates/{candidate_id}/documents/upload")
async def upload_document(
    candidate_id: str,
    title: str = Form(...),
    file: UploadFile = File(...),
    candidates: CandidateDirectory = Depends(get_candidate_directory),
):
    content = await file.read()
    candidate = candidates.add_document(candidate_id, title, file.filename, content)
    return {"success": True, "candidate": candidate.to_json()}

@app.post("/candidates/{candidate_id}/license")
async def update_license(
    candidate_id: str,
    expiration_date: Optional[str] = Form(None, alias="expirationDate"),
    file: Optional[UploadFile] = File(None),
    candidates: CandidateDirectory = Depends(get_candidate_directory),
):
    content = await file.read() if file is not None else b""
    filename = file.filename if file is not None else None
    candidate = candidates.update_license(candidate_id, filename, content, expiration_date)
    return {"success": True, "candidate": candidate.to_json()}

@app.post("/candidates/{candidate_id}/actions/{action}")
async def run_candidate_action(
    candidate_id: str,
    action: str,
    candidates: CandidateDirectory = Depends(get_candidate_directory),
):
    """Dashboard buttons: set-to-interview, mark-as-new-hire, activate, deactivate, reject."""
    handler = lifecycle.ACTIONS.get(action)
    if handler is None:
        raise ValidationException(
            f"Unknown action '{action}'. Must be one of: {', '.join(lifecycle.ACTIONS)}"
        )
    candidate = handler(candidates, candidate_id)
    if action == "reject":
        return {"success": True, "deleted": candidate.id}
    return {"success": True, "candidate": _candidate_view(candidate)}

@app.post("/candidates/{candidate_id}/missing-documents")
async def detect_missing_documents(
    candidate_id: str,
    process_id: Optional[str] = Query(None, alias="processId"),
    candidates: CandidateDirectory = Depends(get_candidate_directory),
    companies: CompanyDirectory = Depends(get_company_directory),
    checker: DocumentChecker = Depends(get_document_checker),
):
    """Advisory check before marking someone as a new hire; it never blocks the transition."""
    candidate = candidates.get(candidate_id)
    _, process = companies.resolve_process(process_id)
    submitted = submitted_document_labels(candidate)
    result = await checker.check_missing_documents(
        DocumentCheckRequest(
            candidate_profile=build_candidate_profile(candidate, submitted),
            onboarding_phase=f"Documentation ({candidate.status.value})",
            submitted_documents=submitted,
            required_documents=[d.label for d in process.required_docs],
        )
    )
    return {"success": True, **result.to_json()}

@app.get("/candidates/{candidate_id}/documentation-link")
async def get_documentation_link(
    candidate_id: str,
    process_id: Optional[str] = Query(None, alias="processId"),
    candidates: CandidateDirectory = Depends(get_candidate_directory),
    companies: CompanyDirectory = Depends(get_company_directory),
):
    candidates.get(candidate_id)
    _, process = companies.resolve_process(process_id)
    return {"success": True, "url": documentation_link(PUBLIC_BASE_URL, process.id, candidate_id)}


# Dashboard

@app.get("/dashboard/summary")
async def dashboard_summary(candidates: CandidateDirectory = Depends(get_candidate_directory)):
    """Badge counts plus change revisions; refetch lists when a revision moves."""
    return {
        "success": True,
        "newCandidates": len(candidates.new_candidates()),
        "interviewing": len(candidates.interviewing()),
        "newHires": len(candidates.new_hires()),
        "expiringDocumentation": len(candidates.expiring_documentation()),
        "revisions": dict(revisions.revisions),
    }

@app.get("/dashboard/new-candidates")
async def new_candidates(candidates: CandidateDirectory = Depends(get_candidate_directory)):
    return {"success": True, "candidates": [c.to_json() for c in candidates.new_candidates()]}

@app.get("/dashboard/interviewing")
async def interviewing(candidates: CandidateDirectory = Depends(get_candidate_directory)):
    return {"success": True, "candidates": [c.to_json() for c in candidates.interviewing()]}

@app.get("/dashboard/new-hires")
async def new_hires(candidates: CandidateDirectory = Depends(get_candidate_directory)):
    return {"success": True, "candidates": [c.to_json() for c in candidates.new_hires()]}

@app.get("/dashboard/expiring-documentation")
async def expiring_documentation(candidates: CandidateDirectory = Depends(get_candidate_directory)):
    flagged = candidates.expiring_documentation()
    return {
        "success": True,
        "candidates": [
            {"candidate": c.to_json(), "classification": classification}
            for c, classification in flagged
        ],
    }


# Candidate-facing pages

@app.get("/application")
async def show_application_form(
    process_id: Optional[str] = Query(None, alias="processId"),
    companies: CompanyDirectory = Depends(get_company_directory),
):
    company, process = companies.resolve_process(process_id)
    form = process.application_form
    return {
        "success": True,
        "company": {"id": company.id, "name": company.name, "logo": company.logo},
        "process": {"id": process.id, "name": process.name},
        "formKind": resolve_form_kind(form).value,
        "formName": form.name,
        "fields": [f.to_json() for f in fields_for(form)],
        "images": form.images,
    }

@app.post("/application")
async def submit_application(
    payload: Dict[str, Any],
    process_id: Optional[str] = Query(None, alias="processId"),
    companies: CompanyDirectory = Depends(get_company_directory),
    candidates: CandidateDirectory = Depends(get_candidate_directory),
):
    company, process = companies.resolve_process(process_id)
    form = process.application_form
    if resolve_form_kind(form) == FormKind.IMAGES:
        raise ValidationException("This application form is view-only and does not accept submissions.")

    cleaned = validate_submission(fields_for(form), payload)
    logger.info(f"Processing application for process {process.id}")
    candidate = candidates.create(application_from_submission(cleaned, company.name, form.name))
    return {"success": True, "candidateId": candidate.id}

@app.get("/documentation")
async def show_documentation_form(
    candidate_id: str = Query(..., alias="candidateId"),
    process_id: Optional[str] = Query(None, alias="processId"),
    companies: CompanyDirectory = Depends(get_company_directory),
    candidates: CandidateDirectory = Depends(get_candidate_directory),
):
    company, process = companies.resolve_process(process_id)
    candidate = candidates.get(candidate_id)
    return {
        "success": True,
        "company": {"id": company.id, "name": company.name, "logo": company.logo},
        "candidate": {"id": candidate.id, "name": candidate.full_name},
        "requiredDocs": [d.to_json() for d in process.required_docs],
        "submitted": submitted_document_labels(candidate),
    }

@app.post("/documentation")
async def submit_documentation(
    payload: Dict[str, bool],
    candidate_id: str = Query(..., alias="candidateId"),
    process_id: Optional[str] = Query(None, alias="processId"),
    companies: CompanyDirectory = Depends(get_company_directory),
    candidates: CandidateDirectory = Depends(get_candidate_directory),
):
    """Records which required documents the new hire ticked off as submitted."""
    _, process = companies.resolve_process(process_id)
    checked = [d for d in process.required_docs if payload.get(d.id)]

    fields = {CHECKLIST_FIELDS[d.id]: SUBMITTED for d in checked if d.id in CHECKLIST_FIELDS}
    candidate = candidates.update_with_documents(candidate_id, fields)
    recorded = {d.title for d in candidate.documents}
    for doc in checked:
        # Resubmitting the checklist must not duplicate generic records
        if doc.id not in CHECKLIST_FIELDS and doc.label not in recorded:
            candidate = candidates.add_document_reference(candidate_id, doc.label, SUBMITTED)
    return {"success": True, "candidate": candidate.to_json()}


# Form generation

@app.post("/forms/generate")
async def generate_form(payload: FormPromptRequest, generator: FormGenerator = Depends(get_form_generator)):
    form = await generator.generate_from_prompt(payload.prompt)
    return {"success": True, "form": form.to_json()}

@app.post("/forms/generate-from-options")
async def generate_form_from_options(payload: FormOptionsRequest, generator: FormGenerator = Depends(get_form_generator)):
    form = await generator.generate_from_structured_options(payload)
    return {"success": True, "form": form.to_json()}


# Uploaded files

@app.get("/files/{key}")
async def get_file(key: str, store: KeyValueStore = Depends(get_store)):
    return Response(content=store.get_blob(key), media_type="application/octet-stream")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=API_PORT)
