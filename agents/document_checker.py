import re

from langchain_core.prompts import ChatPromptTemplate

from config import LLM_TIMEOUT_SECONDS
from exceptions import ExternalServiceError
from logging_config import setup_logger
from models import ApplicationData
from .llm import LazyChain, invoke_structured
from .schemas import DocumentCheckRequest, MissingDocuments, MissingDocumentsResult

logger = setup_logger("DocumentChecker")

def create_document_checker_agent(llm):
    """
    Creates the agent that compares submitted documents with a process's
    required documents. Matching is semantic: an uploaded "Passport scan"
    satisfies "Proof of Identity".
    """
    prompt = ChatPromptTemplate.from_messages(
        [
            (
                "system",
                "You are an HR onboarding assistant. Your task is to decide which required documents a "
                "candidate has not submitted yet.\n\n"
                "GUIDELINES:\n"
                "1. A required document counts as submitted if any submitted document serves the same purpose, "
                "even when the names differ\n"
                "2. Return only labels taken verbatim from the required documents list\n"
                "3. If every required document is covered, return an empty list",
            ),
            (
                "human",
                "Candidate Profile:\n{candidate_profile}\n\n"
                "Onboarding Phase: {onboarding_phase}\n\n"
                "Submitted Documents:\n{submitted_documents}\n\n"
                "Required Documents:\n{required_documents}\n\n"
                "Which required documents are missing?"
            ),
        ]
    )
    return prompt | llm.with_structured_output(MissingDocuments)

def build_candidate_profile(candidate: ApplicationData, submitted) -> str:
    return (
        f"Name: {candidate.full_name}\n"
        f"Position Applying For: {candidate.position or 'N/A'}\n"
        f"Applying to: {', '.join(candidate.applying_for) or 'N/A'}\n"
        f"Submitted Documents: {', '.join(submitted) or 'None'}"
    )

def _normalize(label: str) -> str:
    return re.sub(r"[^a-z0-9]+", " ", label.lower()).strip()


class DocumentChecker:

    def __init__(self, chain, timeout: float = LLM_TIMEOUT_SECONDS):
        self.chain = chain
        self.timeout = timeout

    @classmethod
    def from_llm(cls, llm_factory, timeout: float = LLM_TIMEOUT_SECONDS):
        """Builds the chain on first use; a model that cannot be created counts as a failed check."""
        return cls(LazyChain(lambda: create_document_checker_agent(llm_factory())), timeout)

    async def check_missing_documents(self, request: DocumentCheckRequest) -> MissingDocumentsResult:
        """
        Returns the required documents that are still missing. Labels that
        match a submitted document exactly are settled without the LLM. If the
        LLM cannot be reached, everything unsettled is reported missing.
        """
        submitted = {_normalize(s) for s in request.submitted_documents}
        unresolved = [r for r in request.required_documents if _normalize(r) not in submitted]
        if not unresolved:
            return MissingDocumentsResult(missing_documents=[])

        try:
            answer = await invoke_structured(
                self.chain,
                {
                    "candidate_profile": request.candidate_profile,
                    "onboarding_phase": request.onboarding_phase,
                    "submitted_documents": "\n".join(f"- {s}" for s in request.submitted_documents) or "None",
                    "required_documents": "\n".join(f"- {r}" for r in unresolved),
                },
                MissingDocuments,
                "Document check",
                self.timeout,
            )
        except ExternalServiceError as e:
            logger.warning(f"Document check unavailable, treating {len(unresolved)} document(s) as missing: {e}")
            return MissingDocumentsResult(missing_documents=unresolved, check_failed=True)

        reported = {_normalize(label) for label in answer.missing_documents}
        unknown = reported - {_normalize(r) for r in unresolved}
        if unknown:
            logger.warning(f"Document check returned labels that are not required: {sorted(unknown)}")

        missing = [r for r in unresolved if _normalize(r) in reported]
        logger.info(f"Document check: {len(missing)} of {len(request.required_documents)} required document(s) missing")
        return MissingDocumentsResult(missing_documents=missing)
