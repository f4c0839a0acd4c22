import re
from typing import List, Set

from langchain_core.prompts import ChatPromptTemplate

from config import LLM_TIMEOUT_SECONDS
from exceptions import ExternalServiceError, ValidationException
from logging_config import setup_logger
from validators import validate_form_purpose
from .llm import LazyChain, invoke_structured
from .schemas import FormOptionsRequest, GeneratedForm

logger = setup_logger("FormGenerator")

FIELD_INSTRUCTIONS = (
    "For each field, provide a unique ID (a camelCase identifier such as 'firstName'), a label, "
    "an appropriate input type (text, number, date, email, phone, textarea, select or checkbox), "
    "and whether it is required.\n"
    "For fields that should have a predefined set of choices, use the 'select' type and provide the options. "
    "Only 'select' fields may have options."
)

def create_form_generator_agent(llm):
    """
    Creates the agent that turns a free-text description into a form structure.

    Args:
        llm: The language model to use

    Returns:
        A chain that takes prompt and returns a GeneratedForm object
    """
    prompt = ChatPromptTemplate.from_messages(
        [
            (
                "system",
                "You are an expert form designer. Based on the user's prompt, generate a structured form "
                "with appropriate fields.\n\n" + FIELD_INSTRUCTIONS +
                "\nAlso, provide a suitable name for the overall form.",
            ),
            ("human", 'User Prompt: "{prompt}"'),
        ]
    )
    return prompt | llm.with_structured_output(GeneratedForm)

def create_form_from_options_agent(llm):
    """Creates the agent that expands a structured questionnaire into a form structure."""
    prompt = ChatPromptTemplate.from_messages(
        [
            (
                "system",
                "You are an expert form designer. Based on the user's structured requirements, "
                "generate a complete and logical form.\n\n"
                "IMPORTANT GUIDELINES:\n"
                "1. Include every personal information item the user lists, plus any other logical personal info fields\n"
                "2. Only include the optional sections the user asks for; never add a section that is not listed\n"
                "3. The 'formName' should be descriptive and based on the purpose\n\n" + FIELD_INSTRUCTIONS,
            ),
            ("human", "User's requirements for the form:\n{requirements}"),
        ]
    )
    return prompt | llm.with_structured_output(GeneratedForm)

def describe_options(options: FormOptionsRequest) -> str:
    lines = [f'- Purpose of the form: "{options.form_purpose}"']
    if options.company_name:
        lines.append(f'- For company: "{options.company_name}"')
    if options.include_logo:
        lines.append("- The form should have a designated area for a company logo.")

    lines.append("\nSections to include:")
    personal = ", ".join(options.personal_info) or "name and contact details"
    lines.append(f"- Personal Information: The user has specified the following fields are essential: {personal}.")
    if options.include_education:
        lines.append("- Education History: A section to detail the applicant's educational background (e.g., high school, college).")
    if options.include_employment_history:
        lines.append("- Employment History: A section to list previous jobs, including dates, responsibilities, and reason for leaving.")
    if options.include_references:
        lines.append("- References: A section for personal or professional references.")
    if options.include_credentials:
        lines.append("- Credentials and Skills: A section for licenses, certifications, or other specialized skills.")
    return "\n".join(lines)


# Words too general to tell personal-info items apart
GENERIC_WORDS = {"info", "information", "full", "contact", "details", "detail", "number", "of", "and", "the", "your"}

# Phrases that mark a field as belonging to an optional section
SECTION_PHRASES = {
    "include_references": ("reference", "referee"),
    "include_education": ("education", "school", "college", "universit", "degree", "diploma", "gpa", "graduat"),
    "include_employment_history": (
        "employment history", "employer", "previous employ", "previous job", "past job",
        "work history", "reason for leaving", "supervisor",
    ),
    "include_credentials": ("license", "licence", "certification", "certificate", "credential"),
}

def _words(text: str) -> List[str]:
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", text or "")
    return [w for w in re.split(r"[^a-z0-9]+", spaced.lower()) if w]

def _stem(word: str) -> str:
    return word[:-1] if len(word) > 3 and word.endswith("s") else word

def _stems(text: str) -> Set[str]:
    return {_stem(w) for w in _words(text)}

def _field_text(field) -> str:
    return " ".join(_words(field.id) + _words(field.label))

def _has_phrase(phrase: str, text: str) -> bool:
    # Phrases match from the start of a word: "reference" must not hit "preference"
    return re.search(r"\b" + re.escape(phrase), text) is not None

def check_options_coverage(options: FormOptionsRequest, form: GeneratedForm):
    """
    Rejects generated forms that leave out a requested personal-info item or
    include a section the user switched off.
    """
    field_stems = [_stems(f"{f.id} {f.label}") for f in form.fields]

    for item in options.personal_info:
        wanted = {s for s in _stems(item) if s not in GENERIC_WORDS} or _stems(item)
        if not any(wanted & stems for stems in field_stems):
            raise ExternalServiceError(f"Generated form is missing a field for '{item}'.")

    requested_text = " ".join(_words(" ".join(options.personal_info)))
    for flag, phrases in SECTION_PHRASES.items():
        if getattr(options, flag):
            continue
        for field in form.fields:
            text = _field_text(field)
            if any(_has_phrase(p, text) and not _has_phrase(p, requested_text) for p in phrases):
                raise ExternalServiceError(
                    f"Generated form includes '{field.label}' although that section was not requested."
                )


class FormGenerator:
    """Generates application form structures with the LLM."""

    def __init__(self, prompt_chain, options_chain, timeout: float = LLM_TIMEOUT_SECONDS):
        self.prompt_chain = prompt_chain
        self.options_chain = options_chain
        self.timeout = timeout

    @classmethod
    def from_llm(cls, llm_factory, timeout: float = LLM_TIMEOUT_SECONDS):
        return cls(
            LazyChain(lambda: create_form_generator_agent(llm_factory())),
            LazyChain(lambda: create_form_from_options_agent(llm_factory())),
            timeout,
        )

    async def generate_from_prompt(self, prompt: str) -> GeneratedForm:
        if not prompt or not prompt.strip():
            raise ValidationException("Please describe the form to generate.")
        logger.info("Generating form from prompt")
        form = await invoke_structured(
            self.prompt_chain, {"prompt": prompt.strip()}, GeneratedForm, "Form generation", self.timeout
        )
        logger.info(f"Generated '{form.form_name}' with {len(form.fields)} fields")
        return form

    async def generate_from_structured_options(self, options: FormOptionsRequest) -> GeneratedForm:
        validate_form_purpose(options.form_purpose)
        logger.info(f"Generating form for purpose '{options.form_purpose}'")
        form = await invoke_structured(
            self.options_chain,
            {"requirements": describe_options(options)},
            GeneratedForm,
            "Form generation",
            self.timeout,
        )
        check_options_coverage(options, form)
        logger.info(f"Generated '{form.form_name}' with {len(form.fields)} fields")
        return form
