from __future__ import annotations

import asyncio

import pytest
from langchain_core.runnables import RunnableLambda

from agents import llm
from agents.document_checker import DocumentChecker, build_candidate_profile
from agents.form_generator import FormGenerator, describe_options
from agents.schemas import DocumentCheckRequest, FormOptionsRequest, GeneratedForm, MissingDocuments
from exceptions import ExternalServiceError, ValidationException
from models import AiFormField, ApplicationData
from tests.conftest import failing_chain, fake_chain

I9 = "Form I-9 (Employment Eligibility)"
IDENTITY = "Proof of Identity & Social Security"


def _form(*fields):
    return GeneratedForm(form_name="Warehouse Associate Application", fields=list(fields))


def _field(field_id, label, field_type="text", **kwargs):
    return AiFormField(id=field_id, label=label, type=field_type, required=kwargs.pop("required", True), **kwargs)


BASIC_FORM = _form(
    _field("fullName", "Full Name"),
    _field("phone", "Phone Number", "phone"),
    _field("email", "Email Address", "email"),
    _field("shiftPreference", "Preferred Shift", "select", options=["Day", "Night"], required=False),
)

BASIC_OPTIONS = FormOptionsRequest(
    form_purpose="Warehouse Associate Application",
    personal_info=["Full Name", "Contact Info (Phone, Email)"],
)


def _check(checker, submitted, required):
    request = DocumentCheckRequest(
        candidate_profile="Name: Ada Lovelace",
        onboarding_phase="Documentation (new-hire)",
        submitted_documents=submitted,
        required_documents=required,
    )
    return asyncio.run(checker.check_missing_documents(request))


# Document checker

def test_missing_documents_exact_scenario():
    seen = {}

    def answer(inputs):
        seen.update(inputs)
        return MissingDocuments(missing_documents=[IDENTITY])

    result = _check(DocumentChecker(fake_chain(answer)), [I9], [I9, IDENTITY])

    assert result.missing_documents == [IDENTITY]
    assert result.check_failed is False
    # Exact matches are settled before the LLM is asked
    assert I9 not in seen["required_documents"]
    assert IDENTITY in seen["required_documents"]


def test_semantic_match_can_clear_a_document():
    checker = DocumentChecker(fake_chain(MissingDocuments(missing_documents=[])))

    result = _check(checker, ["Passport scan"], [IDENTITY])

    assert result.missing_documents == []


def test_nothing_to_ask_when_everything_matches_exactly():
    result = _check(DocumentChecker(failing_chain()), ["form i-9 (employment eligibility)"], [I9])

    assert result.missing_documents == []
    assert result.check_failed is False


def test_checker_failure_assumes_documents_are_missing():
    result = _check(DocumentChecker(failing_chain()), [I9], [I9, IDENTITY])

    assert result.missing_documents == [IDENTITY]
    assert result.check_failed is True


def test_unconfigured_model_is_an_external_service_error(monkeypatch):
    monkeypatch.setattr(llm, "GROQ_API_KEY", None)
    llm.get_llm.cache_clear()

    with pytest.raises(ExternalServiceError):
        llm.get_llm()
    llm.get_llm.cache_clear()


def test_checker_without_a_model_assumes_documents_are_missing():
    def no_model():
        raise ExternalServiceError("The language model is not configured.")

    result = _check(DocumentChecker.from_llm(no_model), [], [I9, IDENTITY])

    assert result.missing_documents == [I9, IDENTITY]
    assert result.check_failed is True


def test_lazy_chain_is_built_once():
    built = []

    def factory():
        built.append(1)
        return fake_chain(MissingDocuments(missing_documents=[]))

    checker = DocumentChecker(llm.LazyChain(factory))
    _check(checker, [], [I9])
    _check(checker, [], [IDENTITY])

    assert built == [1]


def test_checker_ignores_labels_that_are_not_required():
    checker = DocumentChecker(fake_chain({"missingDocuments": ["Birth Certificate", "proof of identity & social security"]}))

    result = _check(checker, [], [I9, IDENTITY])

    assert result.missing_documents == [IDENTITY]


def test_candidate_profile():
    candidate = ApplicationData(first_name="Ada", last_name="Lovelace", position="Driver", applying_for=["Acme"])

    profile = build_candidate_profile(candidate, [I9])

    assert "Name: Ada Lovelace" in profile
    assert "Applying to: Acme" in profile
    assert f"Submitted Documents: {I9}" in profile


# Form generator

def _generator(prompt_result=None, options_result=None, timeout=5):
    return FormGenerator(
        prompt_chain=fake_chain(prompt_result) if prompt_result is not None else failing_chain(),
        options_chain=fake_chain(options_result) if options_result is not None else failing_chain(),
        timeout=timeout,
    )


def test_generate_from_prompt():
    seen = {}

    def answer(inputs):
        seen.update(inputs)
        return BASIC_FORM

    form = asyncio.run(_generator(prompt_result=answer).generate_from_prompt("  A warehouse job application  "))

    assert form.form_name == "Warehouse Associate Application"
    assert seen == {"prompt": "A warehouse job application"}


def test_generate_from_prompt_requires_a_prompt():
    with pytest.raises(ValidationException):
        asyncio.run(_generator().generate_from_prompt("   "))


def test_backend_failure_propagates():
    with pytest.raises(ExternalServiceError):
        asyncio.run(_generator().generate_from_prompt("A warehouse job application"))


def test_invalid_output_is_a_hard_error():
    bad = {"formName": "Broken", "fields": [{"id": "role", "label": "Role", "type": "select", "required": True}]}

    with pytest.raises(ExternalServiceError):
        asyncio.run(_generator(prompt_result=bad).generate_from_prompt("A warehouse job application"))


def test_empty_output_is_a_hard_error():
    with pytest.raises(ExternalServiceError):
        asyncio.run(_generator(prompt_result={"formName": "Empty", "fields": []}).generate_from_prompt("anything"))


def test_generation_times_out():
    async def slow(_inputs):
        await asyncio.sleep(1)
        return BASIC_FORM

    generator = FormGenerator(prompt_chain=RunnableLambda(slow), options_chain=failing_chain(), timeout=0.01)

    with pytest.raises(ExternalServiceError):
        asyncio.run(generator.generate_from_prompt("A warehouse job application"))


def test_structured_options_cover_personal_info_without_extra_sections():
    form = asyncio.run(_generator(options_result=BASIC_FORM).generate_from_structured_options(BASIC_OPTIONS))

    assert [f.id for f in form.fields] == ["fullName", "phone", "email", "shiftPreference"]


def test_structured_options_reject_missing_personal_info():
    form = _form(_field("fullName", "Full Name"), _field("shift", "Shift", "select", options=["Day"]))

    with pytest.raises(ExternalServiceError):
        asyncio.run(_generator(options_result=form).generate_from_structured_options(BASIC_OPTIONS))


@pytest.mark.parametrize(
    "extra_field",
    [
        _field("highestDegree", "Highest Degree Earned"),
        _field("previousEmployer", "Previous Employer"),
        _field("reference1Name", "Reference Name"),
        _field("forkliftCertification", "Forklift Certification", "checkbox"),
    ],
)
def test_structured_options_reject_unrequested_sections(extra_field):
    form = _form(*BASIC_FORM.fields, extra_field)

    with pytest.raises(ExternalServiceError):
        asyncio.run(_generator(options_result=form).generate_from_structured_options(BASIC_OPTIONS))


def test_requested_sections_are_allowed():
    options = BASIC_OPTIONS.model_copy(update={"include_education": True, "include_credentials": True})
    form = _form(
        *BASIC_FORM.fields,
        _field("highestDegree", "Highest Degree Earned"),
        _field("forkliftCertification", "Forklift Certification", "checkbox"),
    )

    result = asyncio.run(_generator(options_result=form).generate_from_structured_options(options))

    assert len(result.fields) == 6


def test_structured_options_require_a_purpose():
    options = BASIC_OPTIONS.model_copy(update={"form_purpose": " "})

    with pytest.raises(ValidationException):
        asyncio.run(_generator(options_result=BASIC_FORM).generate_from_structured_options(options))


def test_describe_options_lists_only_requested_sections():
    options = BASIC_OPTIONS.model_copy(update={"company_name": "Acme", "include_logo": True, "include_references": True})

    text = describe_options(options)

    assert '- For company: "Acme"' in text
    assert "company logo" in text
    assert "Full Name, Contact Info (Phone, Email)" in text
    assert "References" in text
    assert "Education History" not in text
    assert "Employment History" not in text
