from typing import List, Optional, Tuple, Union

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from db import KeyValueStore, build_upload_key
from events import ChangeNotifier
from exceptions import NotFoundError, ValidationException
from logging_config import setup_logger
from models import (
    Company,
    OnboardingProcess,
    RequiredDoc,
    default_onboarding_process,
    generate_id,
    now_iso,
)
from repository import JsonCollectionRepository
from validators import IMAGE_EXTENSIONS, validate_company_name, validate_upload_file

logger = setup_logger("CompanyDirectory")

COMPANIES_KEY = "companies_list"

# Nested objects that are patched key-by-key instead of replaced
NESTED_PROCESS_KEYS = ("applicationForm", "interviewScreen")


def _camel_keys(data: dict) -> dict:
    return {to_camel(k) if "_" in k else k: v for k, v in data.items()}


def _validated(model, data: dict, what: str):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ValidationException(f"Invalid {what}: {e.errors()[0]['msg']}") from e


class CompanyDirectory:
    """Companies and the onboarding processes embedded in them."""

    def __init__(self, store: KeyValueStore, notifier: Optional[ChangeNotifier] = None):
        self.store = store
        self.repo = JsonCollectionRepository(store, COMPANIES_KEY, Company, notifier)

    def list(self) -> List[Company]:
        return self.repo.list()

    def get(self, company_id: str) -> Company:
        company = self.repo.get_by_id(company_id)
        if company is None:
            raise NotFoundError(f"Company '{company_id}' not found.")
        return company

    def create_or_update(self, partial: dict) -> Company:
        """
        Creates a company when ``partial`` has no id, otherwise merges the given
        fields into the stored company. ``id`` and ``created_at`` never change
        once assigned.
        """
        data = dict(partial)
        data.pop("created_at", None)
        data = _camel_keys(data)
        company_id = data.pop("id", None)
        changes = _validated(Company, data, "company").model_dump(
            mode="json", by_alias=True, exclude_unset=True
        )

        if company_id:
            existing = self.get(company_id)
            company = _validated(Company, {**existing.to_json(), **changes}, "company")
            self.repo.upsert(company)
            logger.info(f"Updated company {company.id} ({company.name})")
            return company

        company = _validated(Company, changes, "company")
        company.id = generate_id()
        company.created_at = now_iso()
        if not company.onboarding_processes:
            company.onboarding_processes = [default_onboarding_process()]
        self.repo.upsert(company)
        logger.info(f"Created company {company.id} ({company.name or 'unnamed'})")
        return company

    def delete(self, company_id: str):
        if self.repo.delete(company_id):
            logger.info(f"Deleted company {company_id}")

    def delete_all(self):
        self.repo.clear()
        logger.info("Deleted all companies")

    # Onboarding processes

    def add_onboarding_process(self, company_id: str, process: Union[OnboardingProcess, dict]) -> Company:
        company = self.get(company_id)
        validate_company_name(company.name)
        if isinstance(process, dict):
            process = _validated(OnboardingProcess, process, "onboarding process")
        if any(p.id == process.id for p in company.onboarding_processes):
            raise ValidationException(f"Process id '{process.id}' already exists for this company.")

        company.onboarding_processes.append(process)
        self.repo.upsert(company)
        logger.info(f"Added process '{process.name}' to company {company.id}")
        return company

    def get_process(self, process_id: str) -> Tuple[Company, OnboardingProcess]:
        for company in self.list():
            for process in company.onboarding_processes:
                if process.id == process_id:
                    return company, process
        raise NotFoundError(f"Onboarding process '{process_id}' not found.")

    def resolve_process(self, process_id: Optional[str] = None) -> Tuple[Company, OnboardingProcess]:
        """
        Finds the process a candidate link points at. Without a process id the
        first company's first process is used.
        """
        if process_id:
            return self.get_process(process_id)

        companies = self.list()
        if not companies:
            raise NotFoundError("No company has been configured yet.")
        company = companies[0]
        if not company.onboarding_processes:
            logger.warning(f"Company {company.id} has no processes; using the default template")
            return company, default_onboarding_process()
        return company, company.onboarding_processes[0]

    def _find_process(self, company: Company, process_id: str) -> int:
        for index, process in enumerate(company.onboarding_processes):
            if process.id == process_id:
                return index
        raise NotFoundError(f"Onboarding process '{process_id}' not found.")

    def update_process(self, company_id: str, process_id: str, patch: dict) -> OnboardingProcess:
        company = self.get(company_id)
        index = self._find_process(company, process_id)
        merged = company.onboarding_processes[index].to_json()

        for key, value in _camel_keys(patch).items():
            if key == "id":
                continue
            if key in NESTED_PROCESS_KEYS and isinstance(value, dict):
                merged[key] = {**merged.get(key, {}), **_camel_keys(value)}
            else:
                merged[key] = value

        process = _validated(OnboardingProcess, merged, "onboarding process")
        company.onboarding_processes[index] = process
        self.repo.upsert(company)
        logger.info(f"Updated process {process_id} of company {company_id}")
        return process

    def delete_process(self, company_id: str, process_id: str) -> Company:
        company = self.get(company_id)
        remaining = [p for p in company.onboarding_processes if p.id != process_id]
        if len(remaining) == len(company.onboarding_processes):
            return company
        if not remaining:
            raise ValidationException("A company must keep at least one onboarding process.")

        removed = self._find_process(company, process_id)
        for key in company.onboarding_processes[removed].application_form.images:
            self.store.delete_blob(key)

        company.onboarding_processes = remaining
        self.repo.upsert(company)
        logger.info(f"Deleted process {process_id} of company {company_id}")
        return company

    def add_required_doc(self, company_id: str, process_id: str, label: str, doc_id: Optional[str] = None) -> OnboardingProcess:
        if not label or not label.strip():
            raise ValidationException("Document label is required.")
        company = self.get(company_id)
        index = self._find_process(company, process_id)
        process = company.onboarding_processes[index]
        doc = RequiredDoc(id=doc_id or generate_id(), label=label.strip())
        if any(d.id == doc.id for d in process.required_docs):
            raise ValidationException(f"Required document id '{doc.id}' already exists.")

        process.required_docs.append(doc)
        self.repo.upsert(company)
        return process

    def remove_required_doc(self, company_id: str, process_id: str, doc_id: str) -> OnboardingProcess:
        company = self.get(company_id)
        index = self._find_process(company, process_id)
        process = company.onboarding_processes[index]
        process.required_docs = [d for d in process.required_docs if d.id != doc_id]
        self.repo.upsert(company)
        return process

    # Uploads

    def set_logo(self, company_id: str, filename: str, content: bytes) -> Company:
        validate_upload_file(filename, len(content), allowed=IMAGE_EXTENSIONS)
        company = self.get(company_id)
        key = self.store.put_blob(build_upload_key("logo", company.name or filename), content)
        if company.logo and company.logo != key:
            self.store.delete_blob(company.logo)
        company.logo = key
        self.repo.upsert(company)
        return company

    def add_form_image(self, company_id: str, process_id: str, filename: str, content: bytes) -> OnboardingProcess:
        validate_upload_file(filename, len(content), allowed=IMAGE_EXTENSIONS)
        company = self.get(company_id)
        process = company.onboarding_processes[self._find_process(company, process_id)]
        key = self.store.put_blob(build_upload_key("form", process.name, process.id), content)
        process.application_form.images.append(key)
        self.repo.upsert(company)
        return process

    def remove_form_image(self, company_id: str, process_id: str, image_key: str) -> OnboardingProcess:
        company = self.get(company_id)
        process = company.onboarding_processes[self._find_process(company, process_id)]
        if image_key in process.application_form.images:
            self.store.delete_blob(image_key)
            process.application_form.images.remove(image_key)
            self.repo.upsert(company)
        return process
