"""
Kleros dispute template and data mapping for Reality.eth questions

The template is rendered once per foreign proxy deployment and passed to its
constructor, so it must be byte-for-byte reproducible from its inputs.
"""

import json
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Dict, List, Optional, Tuple

from ..errors import TemplateRenderError
from .renderer import render

# The question's own answers come first so that ruling N still means the
# question's Nth answer. "Answered Too Soon" follows them as the last answer
# instead of leading the list. Every deferred answer ends with a comma since
# fixed answers always follow, and only the terminal fixed answer omits one.
DISPUTE_TEMPLATE_SOURCE = """{
    "title": "{{ title }}",
    "description": "{{ description }}",
    "question": "{{ question }}",
    "type": "{{ type }}",
    "answers": [
      {{# answers }}
      {
        "title": "{{ title }}",
        "description": "{{ description }}"
      },
      {{/ answers }}
      {{# fixedAnswers }}
      {
        "title": "{{ title }}",
        "description": "{{ description }}"{{# id }},
        "id": "{{ id }}"{{/ id }}{{# reserved }},
        "reserved": true{{/ reserved }}
      }{{^ terminal }},{{/ terminal }}
      {{/ fixedAnswers }}
    ],
    "policyURI": "{{ policyURI }}",
    "frontendUrl": "{{ frontendUrl }}",
    "arbitratorChainID": "{{ arbitratorChainID }}",
    "arbitratorAddress": "{{ arbitratorAddress }}",
    "category": "{{ category }}",
    "lang": "{{ lang }}",
    "specification": "{{ specification }}",
    "version": "{{ version }}"
}"""

DEFAULT_POLICY_URI = "/ipfs/QmZ5XaV2RVgBADq5qMpbuEwgCuPZdRgCeu8rhGtJWLV6yz"
DEFAULT_FRONTEND_URL = "https://reality.eth.limo/app/#!/question/{{ realityAddress }}-{{ questionId }}"


def _json_escape(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)[1:-1]


@dataclass(frozen=True)
class Answer:
    """A fixed answer of the dispute template"""
    title: str
    description: str
    id: Optional[str] = None
    reserved: bool = False
    terminal: bool = False  # the catch-all answer, rendered last

    def to_context(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "id": self.id,
            "reserved": self.reserved,
            "terminal": self.terminal,
        }


# Catch-all ruling, rendered after the question's answers
ANSWERED_TOO_SOON = Answer(
    title="Answered Too Soon",
    description="Answered Too Soon.",
    terminal=True,
)

DEFAULT_ANSWERS: Tuple[Answer, ...] = (ANSWERED_TOO_SOON,)


def order_answers(answers: Tuple[Answer, ...]) -> Tuple[Answer, ...]:
    """Check the answer list and move the terminal answer to the end"""
    if not answers:
        raise TemplateRenderError("Dispute template needs at least one answer")

    terminal = [answer for answer in answers if answer.terminal]
    if len(terminal) != 1:
        raise TemplateRenderError(
            f"Dispute template needs exactly one terminal answer, got {len(terminal)}"
        )
    return tuple(answer for answer in answers if not answer.terminal) + (terminal[0],)


@dataclass(frozen=True)
class DisputeTemplate:
    """A Reality.eth dispute description for the Kleros arbitrator"""
    arbitrator_chain_id: int
    arbitrator_address: str
    answers: Tuple[Answer, ...] = DEFAULT_ANSWERS
    title: str = "A reality.eth question"
    description: str = "A reality.eth question has been raised to arbitration."
    question: str = "{{ question }}"
    type: str = "{{ type }}"
    policy_uri: str = DEFAULT_POLICY_URI
    frontend_url: str = DEFAULT_FRONTEND_URL
    category: str = "Oracle"
    lang: str = "en_US"
    specification: str = "KIP99"
    version: str = "1.0"

    def to_context(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "question": self.question,
            "type": self.type,
            "fixedAnswers": [answer.to_context() for answer in order_answers(self.answers)],
            "policyURI": self.policy_uri,
            "frontendUrl": self.frontend_url,
            "arbitratorChainID": str(self.arbitrator_chain_id),
            "arbitratorAddress": self.arbitrator_address,
            "category": self.category,
            "lang": self.lang,
            "specification": self.specification,
            "version": self.version,
        }

    @cached_property
    def document(self) -> str:
        """The rendered template, with the arbitration-time placeholders left in place"""
        return render(DISPUTE_TEMPLATE_SOURCE, self.to_context(), escape=_json_escape)


def render_template(chain_id: int, arbitrator_address: str, answers: Tuple[Answer, ...] = DEFAULT_ANSWERS,
                    **overrides) -> DisputeTemplate:
    """
    Synthesize the dispute template of a foreign proxy.

    Args:
        chain_id: Chain id of the network hosting the arbitrator
        arbitrator_address: Address of the KlerosCore contract
        answers: Fixed answers, exactly one of them terminal
        overrides: Other DisputeTemplate fields (policy_uri, category...)

    Raises:
        TemplateRenderError: if the answers are invalid
    """
    template = DisputeTemplate(
        arbitrator_chain_id=chain_id,
        arbitrator_address=arbitrator_address,
        answers=tuple(answers),
        **overrides,
    )
    # Render eagerly so that an invalid template never leaves this function
    if not template.document:
        raise TemplateRenderError("Dispute template rendered empty")
    return template


def _field_names(value: Any) -> List[str]:
    names: List[str] = []
    if isinstance(value, dict):
        for key, nested in value.items():
            names.append(key)
            names.extend(_field_names(nested))
    elif isinstance(value, list):
        for nested in value:
            names.extend(_field_names(nested))
    return names


@dataclass(frozen=True)
class MappingEntry:
    """One data lookup populating template placeholders"""
    type: str
    value: Dict[str, Any]
    seek: Tuple[str, ...] = ()
    populate: Tuple[str, ...] = ()

    def validate(self):
        if len(self.seek) != len(self.populate):
            raise TemplateRenderError(
                f"Mapping '{self.type}' seeks {len(self.seek)} field(s) but populates {len(self.populate)}"
            )
        known = set(_field_names(self.value))
        unknown = [name for name in self.seek + self.populate if name not in known]
        if unknown:
            raise TemplateRenderError(f"Mapping '{self.type}' references unknown field(s): {sorted(set(unknown))}")

    def to_json(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "value": self.value,
            "seek": list(self.seek),
            "populate": list(self.populate),
        }


@dataclass(frozen=True)
class DisputeTemplateMapping:
    entries: Tuple[MappingEntry, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.entries)

    @cached_property
    def document(self) -> str:
        return json.dumps([entry.to_json() for entry in self.entries], separators=(",", ":"), ensure_ascii=False)


REALITY_FIELDS = ("question", "type", "answers", "realityAddress", "questionId")


def render_mapping(reality_address: str, reality_chain_id: int) -> DisputeTemplateMapping:
    """
    Build the mapping that fills a dispute template from the Reality.eth question.

    The question id is the external dispute id the foreign proxy reports to
    the arbitrator; it is only known once a dispute exists.
    """
    entry = MappingEntry(
        type="reality",
        value={
            "realityAddress": reality_address,
            "chainId": reality_chain_id,
            "questionId": "{{ externalDisputeID }}",
            "question": "",
            "type": "",
            "answers": [],
        },
        seek=REALITY_FIELDS,
        populate=REALITY_FIELDS,
    )
    mapping = DisputeTemplateMapping(entries=(entry,))
    for mapping_entry in mapping.entries:
        mapping_entry.validate()
    return mapping

