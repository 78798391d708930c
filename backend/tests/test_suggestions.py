from __future__ import annotations

import json
from datetime import timedelta
from types import SimpleNamespace

import pytest
import requests

from compliance_hub.config import Settings
from compliance_hub.domain_errors import Conflict, Forbidden, NotFound, UpstreamFailure, ValidationFailed
from compliance_hub.schemas import ArtefactClassificationRequest, SuggestedLabel, SuggestionReview, SuggestionStatus
from compliance_hub.services.store import AI_AGENT, AI_SUGGESTION, ARTEFACT, CLAUSE, CLAUSE_MAPPING
from compliance_hub.services.suggestion_oracle import HttpSuggestionOracle, extract_json, rank_labels
from compliance_hub.use_cases.suggestions import (
    classify_artefact_use_case,
    delete_suggestion_use_case,
    get_suggestion_stats_use_case,
    get_suggestion_use_case,
    list_suggestions_use_case,
    review_suggestion_use_case,
)

from conftest import NOW


def _seed_suggestion(store, *, org_id, **overrides):
    fields = {
        "org_id": org_id,
        "type": "compliance_gap",
        "title": "Schedule Root Cause Analysis",
        "content": "Conduct root cause analysis",
        "confidence": 0.85,
        "created_at": NOW - timedelta(hours=1),
    }
    fields.update(overrides)
    return store.seed(AI_SUGGESTION, **fields)


@pytest.fixture
def artefact(store, org_id):
    return store.seed(ARTEFACT, org_id=org_id, title="Corrective Action Procedure", status="UNDER_REVIEW")


@pytest.fixture
def clauses(store, org_id):
    return {
        number: store.seed(CLAUSE, org_id=org_id, standard="ISO_9001_2015", clause_number=number, title=title)
        for number, title in (("8.7", "Nonconforming outputs"), ("10.2", "Corrective action"), ("7.5", "Documented information"))
    }


def test_review_accepts_pending_suggestion_and_audits(ctx, store, admin, org_id) -> None:
    suggestion = _seed_suggestion(store, org_id=org_id)

    reviewed = review_suggestion_use_case(
        ctx=ctx,
        suggestion_id=suggestion.id,
        review=SuggestionReview(status="ACCEPTED", review_notes="Planned for Q2"),
        principal=admin,
    )

    assert reviewed.status == "ACCEPTED"
    assert reviewed.reviewed_by_id == admin.id
    assert reviewed.reviewed_at == NOW
    [entry] = store.audit_entries("ai_suggestion.reviewed")
    assert entry.details == {"status": "ACCEPTED", "type": "compliance_gap"}


def test_review_is_final(ctx, store, admin, org_id) -> None:
    suggestion = _seed_suggestion(store, org_id=org_id, status="REJECTED")

    with pytest.raises(Conflict) as exc:
        review_suggestion_use_case(
            ctx=ctx, suggestion_id=suggestion.id, review=SuggestionReview(status="ACCEPTED"), principal=admin
        )
    assert exc.value.code == "SUGGESTION_ALREADY_REVIEWED"


def test_review_back_to_pending_is_invalid(ctx, store, admin, org_id) -> None:
    suggestion = _seed_suggestion(store, org_id=org_id)
    with pytest.raises(ValidationFailed):
        review_suggestion_use_case(
            ctx=ctx, suggestion_id=suggestion.id, review=SuggestionReview(status="PENDING"), principal=admin
        )


def test_regular_user_cannot_review(ctx, store, member, org_id) -> None:
    suggestion = _seed_suggestion(store, org_id=org_id)
    with pytest.raises(Forbidden):
        review_suggestion_use_case(
            ctx=ctx, suggestion_id=suggestion.id, review=SuggestionReview(status="ACCEPTED"), principal=member
        )


def test_list_and_stats_are_scoped(ctx, store, member, org_id, other_org_id) -> None:
    newest = _seed_suggestion(store, org_id=org_id, created_at=NOW)
    older = _seed_suggestion(store, org_id=org_id, status="ACCEPTED", confidence=0.65)
    _seed_suggestion(store, org_id=other_org_id)

    assert [s.id for s in list_suggestions_use_case(ctx=ctx, principal=member)] == [newest.id, older.id]
    assert [s.id for s in list_suggestions_use_case(ctx=ctx, principal=member, status=SuggestionStatus.ACCEPTED)] == [older.id]

    stats = get_suggestion_stats_use_case(ctx=ctx, principal=member)
    assert stats.total == 2
    assert stats.confidence_average == pytest.approx(0.75)


def test_classify_applies_confident_labels_and_queues_the_rest(
    ctx, store, oracle, member, org_id, artefact, clauses
) -> None:
    reviewer = store.seed(AI_AGENT, name="Document Reviewer", type="DOCUMENT_REVIEWER")
    oracle.labels = [
        SuggestedLabel(label="7.5", confidence=0.55, rationale="Mentions record keeping"),
        SuggestedLabel(label="10.2", confidence=0.92, rationale="Describes corrective action"),
        SuggestedLabel(label="99.9", confidence=0.99),
        SuggestedLabel(label="8.7", confidence=0.8),
    ]

    result = classify_artefact_use_case(
        ctx=ctx,
        artefact_id=artefact.id,
        request=ArtefactClassificationRequest(text="When a nonconformity occurs ..."),
        principal=member,
    )

    assert [m.clause_id for m in result.applied] == [clauses["10.2"].id, clauses["8.7"].id]
    assert [s.meta_data["clause_number"] for s in store.all(AI_SUGGESTION)] == ["7.5"]
    [pending] = result.pending
    assert pending.status == "PENDING"
    assert pending.agent_id == reviewer.id
    assert pending.confidence == pytest.approx(0.55)
    assert [label.label for label in result.ignored] == ["99.9"]

    assert len(store.all(CLAUSE_MAPPING)) == 2
    [entry] = store.audit_entries("artefact.classified")
    assert entry.details["threshold"] == pytest.approx(0.8)
    assert entry.details["pending"] == 1
    assert store.commit_calls == 1

    [(text, context)] = oracle.calls
    assert text.startswith("When a nonconformity")
    assert {c["clause_number"] for c in context["clauses"]} == {"8.7", "10.2", "7.5"}


def test_classify_skips_clauses_already_mapped(ctx, store, oracle, member, org_id, artefact, clauses) -> None:
    store.seed(CLAUSE_MAPPING, org_id=org_id, artefact_id=artefact.id, clause_id=clauses["8.7"].id, confidence=0.9)
    oracle.labels = [SuggestedLabel(label="8.7", confidence=0.95)]

    result = classify_artefact_use_case(
        ctx=ctx, artefact_id=artefact.id, request=ArtefactClassificationRequest(text="text"), principal=member
    )
    assert result.applied == []
    assert [label.label for label in result.ignored] == ["8.7"]


def test_classify_honours_requested_threshold(ctx, store, oracle, member, artefact, clauses) -> None:
    oracle.labels = [SuggestedLabel(label="7.5", confidence=0.55)]

    result = classify_artefact_use_case(
        ctx=ctx,
        artefact_id=artefact.id,
        request=ArtefactClassificationRequest(text="text", min_confidence=0.5),
        principal=member,
    )
    assert [m.clause_id for m in result.applied] == [clauses["7.5"].id]
    assert result.pending == []


def test_classify_oracle_failure_writes_nothing(ctx, store, oracle, member, artefact, clauses) -> None:
    oracle.error = UpstreamFailure("down", code="ORACLE_UNAVAILABLE")

    with pytest.raises(UpstreamFailure):
        classify_artefact_use_case(
            ctx=ctx, artefact_id=artefact.id, request=ArtefactClassificationRequest(text="text"), principal=member
        )
    assert store.all(CLAUSE_MAPPING) == []
    assert store.audit_entries() == []
    assert store.commit_calls == 0


def test_classify_artefact_of_other_org_is_not_found(ctx, store, oracle, member, other_org_id) -> None:
    foreign = store.seed(ARTEFACT, org_id=other_org_id, title="Their manual")
    with pytest.raises(NotFound):
        classify_artefact_use_case(
            ctx=ctx, artefact_id=foreign.id, request=ArtefactClassificationRequest(text="text"), principal=member
        )
    assert oracle.calls == []


# Oracle parsing and HTTP transport


def test_extract_json_tolerates_surrounding_prose() -> None:
    assert extract_json('Here you go: {"labels": []} hope it helps') == {"labels": []}
    assert extract_json("no json here") is None
    assert extract_json("") is None


def test_rank_labels_sorts_and_skips_malformed_entries() -> None:
    labels = rank_labels(
        [
            {"label": "7.5", "confidence": 0.4},
            {"label": "8.7", "confidence": 1.7},
            "8.7",
            {"label": "10.2", "confidence": 0.9, "rationale": "corrective action"},
        ]
    )
    assert [(label.label, label.confidence) for label in labels] == [("10.2", 0.9), ("7.5", 0.4)]


class _ResponseStub:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class _SessionStub:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.posts = []

    def post(self, url, **kwargs):
        self.posts.append(SimpleNamespace(url=url, **kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def _oracle_settings(**overrides) -> Settings:
    return Settings(AI_HTTP_BASE="https://llm.example/", AI_HTTP_API_KEY="secret", **overrides)


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"content": content}}]}


def test_http_oracle_posts_chat_completion_and_ranks_labels() -> None:
    content = json.dumps({"labels": [{"label": "8.7", "confidence": 0.6}, {"label": "10.2", "confidence": 0.9}]})
    session = _SessionStub(response=_ResponseStub(_completion(content)))

    labels = HttpSuggestionOracle(_oracle_settings(), session=session).classify(
        "document", {"standard": "ISO_9001_2015", "clauses": [{"clause_number": "8.7", "title": "Outputs"}]}
    )

    assert [label.label for label in labels] == ["10.2", "8.7"]
    [post] = session.posts
    assert post.url == "https://llm.example/v1/chat/completions"
    assert post.headers["Authorization"] == "Bearer secret"
    assert "8.7: Outputs" in json.loads(post.data)["messages"][1]["content"]


def test_http_oracle_requires_base_url() -> None:
    oracle = HttpSuggestionOracle(Settings(AI_HTTP_BASE=None), session=_SessionStub())
    with pytest.raises(UpstreamFailure) as exc:
        oracle.classify("text", {})
    assert exc.value.code == "ORACLE_NOT_CONFIGURED"


def test_http_oracle_maps_transport_errors() -> None:
    session = _SessionStub(error=requests.ConnectionError("refused"))
    with pytest.raises(UpstreamFailure) as exc:
        HttpSuggestionOracle(_oracle_settings(), session=session).classify("text", {})
    assert exc.value.code == "ORACLE_UNAVAILABLE"


def test_http_oracle_maps_http_errors() -> None:
    session = _SessionStub(response=_ResponseStub({}, status_code=503))
    with pytest.raises(UpstreamFailure) as exc:
        HttpSuggestionOracle(_oracle_settings(), session=session).classify("text", {})
    assert exc.value.code == "ORACLE_UNAVAILABLE"


def test_http_oracle_rejects_unreadable_answer() -> None:
    session = _SessionStub(response=_ResponseStub(_completion("I am not sure, sorry.")))
    with pytest.raises(UpstreamFailure) as exc:
        HttpSuggestionOracle(_oracle_settings(), session=session).classify("text", {})
    assert exc.value.code == "ORACLE_BAD_RESPONSE"


def test_extract_json_only_accepts_objects() -> None:
    assert extract_json('[{"label": "8.7", "confidence": 0.9}]') is None
    assert extract_json("42") is None
    assert extract_json(None) is None


def test_rank_labels_accepts_numeric_clause_numbers() -> None:
    labels = rank_labels([{"label": 8.7, "confidence": 0.7}, {"label": 10, "confidence": 0.5}, {"label": True, "confidence": 0.9}])
    assert [label.label for label in labels] == ["8.7", "10"]


def test_rank_labels_ignores_non_list_input() -> None:
    assert rank_labels({"label": "8.7", "confidence": 0.9}) == []
    assert rank_labels(None) == []


@pytest.mark.parametrize(
    "payload",
    [
        {"choices": []},
        [],
        {"choices": ["8.7"]},
        {"choices": [{"message": "8.7"}]},
        {"choices": [{"message": {"content": ["8.7"]}}]},
        _completion('[{"label": "8.7", "confidence": 0.9}]'),
        _completion('{"labels": 7}'),
    ],
)
def test_http_oracle_maps_unexpected_shapes_to_bad_response(payload) -> None:
    session = _SessionStub(response=_ResponseStub(payload))
    with pytest.raises(UpstreamFailure) as exc:
        HttpSuggestionOracle(_oracle_settings(), session=session).classify("text", {})
    assert exc.value.code == "ORACLE_BAD_RESPONSE"


def test_get_suggestion_is_scoped_to_org(ctx, store, member, org_id, other_org_id) -> None:
    own = _seed_suggestion(store, org_id=org_id)
    foreign = _seed_suggestion(store, org_id=other_org_id)

    assert get_suggestion_use_case(ctx=ctx, suggestion_id=own.id, principal=member) is own
    with pytest.raises(NotFound) as exc:
        get_suggestion_use_case(ctx=ctx, suggestion_id=foreign.id, principal=member)
    assert exc.value.code == "SUGGESTION_NOT_FOUND"


def test_delete_suggestion_requires_admin_and_audits(ctx, store, member, admin, org_id) -> None:
    suggestion = _seed_suggestion(store, org_id=org_id)

    with pytest.raises(Forbidden):
        delete_suggestion_use_case(ctx=ctx, suggestion_id=suggestion.id, principal=member)

    delete_suggestion_use_case(ctx=ctx, suggestion_id=suggestion.id, principal=admin)
    assert store.all(AI_SUGGESTION) == []
    [entry] = store.audit_entries("ai_suggestion.deleted")
    assert entry.entity_id == suggestion.id
    assert entry.details == {"type": "compliance_gap", "status": "PENDING"}
