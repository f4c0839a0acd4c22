from pydantic import Field, model_validator
from typing import List, Optional

from models import AiFormField, CamelModel

class GeneratedForm(CamelModel):
    """A generated application form structure."""
    form_name: str = Field(description="A suitable name for the generated form (e.g., 'Delivery Driver Application').")
    fields: List[AiFormField] = Field(description="An array of objects, where each object represents a field in the form.")

    @model_validator(mode="after")
    def check_fields(self):
        if not self.form_name.strip():
            raise ValueError("Generated form has no name.")
        if not self.fields:
            raise ValueError("Generated form has no fields.")
        ids = [f.id for f in self.fields]
        if len(ids) != len(set(ids)):
            raise ValueError("Generated form has duplicate field ids.")
        return self

class FormPromptRequest(CamelModel):
    prompt: str = Field(description="A natural language description of the form to be generated.")

class FormOptionsRequest(CamelModel):
    form_purpose: str = Field(description="A brief description of the form's purpose (e.g., 'Delivery Driver Application').")
    company_name: Optional[str] = Field(default=None, description="The name of the company for which the form is being created.")
    include_logo: bool = Field(default=False, description="Whether to include a space for a company logo.")
    personal_info: List[str] = Field(default_factory=list, description="A list of essential personal information fields to include.")
    include_references: bool = Field(default=False, description="Whether to include a section for personal or professional references.")
    include_education: bool = Field(default=False, description="Whether to include a section for educational history.")
    include_employment_history: bool = Field(default=False, description="Whether to include a section for previous employment history.")
    include_credentials: bool = Field(default=False, description="Whether to include a section for special credentials, licenses, or skills.")

class DocumentCheckRequest(CamelModel):
    candidate_profile: str
    onboarding_phase: str
    submitted_documents: List[str] = Field(default_factory=list)
    required_documents: List[str] = Field(default_factory=list)

class MissingDocuments(CamelModel):
    """Required documents the candidate has not submitted yet."""
    missing_documents: List[str] = Field(
        description="The required document labels, copied exactly, that are not covered by any submitted document."
    )

class MissingDocumentsResult(CamelModel):
    missing_documents: List[str]
    # True when the checker could not be reached and every unresolved document is assumed missing
    check_failed: bool = False
