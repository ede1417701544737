import asyncio
from types import SimpleNamespace

from caregiver_card.models.requests import PatientContacts
from caregiver_card.services.llm_service import LLMService


class FakeCompletions:
    def __init__(self, reply):
        self.reply = reply
        self.prompts = []

    async def create(self, model, temperature, messages):
        self.prompts.append(messages[0]["content"])
        if isinstance(self.reply, Exception):
            raise self.reply
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_service(reply):
    completions = FakeCompletions(reply)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LLMService(client=client), completions


def test_translate_returns_stripped_content():
    service, completions = make_service("  Hola  ")
    assert asyncio.run(service.translate("Hello", "es")) == "Hola"
    assert completions.prompts[0].startswith("Translate to es:")


def test_translate_skips_empty_input():
    service, completions = make_service("unused")
    assert asyncio.run(service.translate("", "es")) == ""
    assert asyncio.run(service.translate("Hello", "")) == ""
    assert completions.prompts == []


def test_translate_failure_gives_empty_string():
    service, _ = make_service(ValueError("boom"))
    assert asyncio.run(service.translate("Hello", "fr")) == ""


def test_detect_language_parses_json():
    service, _ = make_service('{"code": "de", "name": "German"}')
    assert asyncio.run(service.detect_language("Guten Tag")) == ("de", "German")


def test_detect_language_defaults_on_bad_reply():
    service, _ = make_service("I think it is English")
    assert asyncio.run(service.detect_language("Hello")) == ("en", "English")


def test_detect_language_fills_missing_name():
    service, _ = make_service('{"code": "fr"}')
    assert asyncio.run(service.detect_language("Bonjour")) == ("fr", "Français")


class FakeStructuredCompletions:
    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    async def create(self, model, response_model, temperature, messages):
        self.calls.append((response_model, messages[-1]["content"]))
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


def make_extractor(reply):
    completions = FakeStructuredCompletions(reply)
    structured = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LLMService(client=SimpleNamespace(), structured_client=structured), completions


def test_extract_contacts_asks_for_patient_contacts():
    service, completions = make_extractor(PatientContacts(name="Jane Doe", emer_phone="555-123-4567"))
    contacts = asyncio.run(service.extract_contacts("My name is Jane Doe, call me at 555-123-4567"))
    assert contacts.name == "Jane Doe"
    assert contacts.emer_phone == "555-123-4567"
    assert completions.calls == [(PatientContacts, "My name is Jane Doe, call me at 555-123-4567")]


def test_extract_contacts_skips_empty_text():
    service, completions = make_extractor(PatientContacts(name="unused"))
    assert asyncio.run(service.extract_contacts("   ")) == PatientContacts()
    assert completions.calls == []


def test_extract_contacts_failure_gives_empty_contacts():
    service, _ = make_extractor(ValueError("not valid json"))
    assert asyncio.run(service.extract_contacts("My name is Jane")) == PatientContacts()
