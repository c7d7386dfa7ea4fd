"""Tests for keyword search and query enhancement."""

from types import SimpleNamespace

import httpx

from app.schemas.projects import ProjectCreate, ProjectTaskCreate
from app.services import projects as projects_service
from app.services.ai.client import AIClientError, AIResponse, ChatCompletionClient
from app.services.search import (
    MAX_RESULTS,
    LlmQueryEnhancer,
    SearchService,
    contact_relevance,
    project_relevance,
)
from tests.factories import make_contact


def _failing_enhancer(query):
    raise AIClientError("endpoint unavailable")


class TestRelevance:
    """Tests for result scoring."""

    def test_contact_exact_beats_partial(self):
        """An exact field match scores above a partial one."""
        contact = SimpleNamespace(first_name="Smith", last_name="Jones", company=None, email=None)
        partial = SimpleNamespace(first_name="Smithers", last_name="Jones", company=None, email=None)
        assert contact_relevance(contact, "smith") == 100
        assert contact_relevance(partial, "smith") == 50

    def test_contact_scores_add_up_across_fields(self):
        """Each matching field contributes."""
        contact = SimpleNamespace(first_name="Alice", last_name="Smith", company="Smith Trust", email="a@smith.com")
        assert contact_relevance(contact, "Smith") == 100 + 50 + 50

    def test_project_name_and_description(self):
        """Name matches dominate; a description match adds a little."""
        assert project_relevance("Trust", None, "trust") == 100
        assert project_relevance("Smith Trust", "Revocable trust review", "trust") == 75 + 25
        assert project_relevance("Smith Will", "Revocable trust review", "trust") == 25


class TestSearchService:
    """Tests for SearchService.search."""

    def test_finds_contacts_projects_and_tasks(self, db_session):
        """One query searches every entity type, best matches first."""
        make_contact(db_session, first_name="Alice", last_name="Trust")
        project = projects_service.projects.create(
            db_session, ProjectCreate(name="Smith Trust Review", description="Annual trust review")
        )
        projects_service.project_tasks.create(
            db_session, ProjectTaskCreate(project_id=project.id, title="Fund trust")
        )

        result = SearchService().search(db_session, "trust")

        assert result["query"] == "trust"
        assert result["terms"] == ["trust"]
        assert [(r["type"], r["relevance"]) for r in result["results"]] == [
            ("contact", 100),
            ("project", 100),
            ("task", 75),
        ]
        assert result["summary"] == 'Found 3 results across contact, project, task for "trust".'

    def test_no_results_summary(self, db_session):
        """An empty result set suggests trying other keywords."""
        result = SearchService().search(db_session, "zzz")
        assert result["results"] == []
        assert result["summary"] == 'No results found for "zzz". Try different keywords or check spelling.'

    def test_results_capped(self, db_session):
        """At most MAX_RESULTS results are returned."""
        for index in range(MAX_RESULTS + 5):
            make_contact(db_session, first_name=f"Estate{index}", last_name="Client")
        result = SearchService().search(db_session, "estate")
        assert len(result["results"]) == MAX_RESULTS

    def test_enhancer_terms_broaden_search(self, db_session):
        """Extra terms from the enhancer find more, without duplicates."""
        make_contact(db_session, first_name="Alice", last_name="Smith", company="Family Office")
        make_contact(db_session, first_name="Bob", last_name="Trustee")

        def enhancer(query):
            return ["office", "TRUST", "", "office"]

        result = SearchService(enhancer=enhancer).search(db_session, "trust")
        assert result["terms"] == ["trust", "office"]
        assert sorted(r["title"] for r in result["results"]) == ["Alice Smith", "Bob Trustee"]

    def test_enhancer_failure_falls_back_to_query(self, db_session):
        """A failing enhancer leaves plain keyword search working."""
        make_contact(db_session, first_name="Bob", last_name="Trustee")
        result = SearchService(enhancer=_failing_enhancer).search(db_session, "trust")
        assert result["terms"] == ["trust"]
        assert [r["title"] for r in result["results"]] == ["Bob Trustee"]

    def test_extra_terms_limited(self):
        """The enhancer can add only a handful of terms."""
        service = SearchService(enhancer=lambda query: [f"t{i}" for i in range(10)])
        terms = service.expand("trust")
        assert terms[0] == "trust"
        assert len(terms) == 5


class TestLlmQueryEnhancer:
    """Tests for LlmQueryEnhancer."""

    def test_parses_comma_separated_reply(self):
        """The completion reply is split into terms."""
        client = SimpleNamespace(
            generate=lambda system, prompt, max_tokens: AIResponse(
                content='trustee, "living trust",\nestate', tokens_in=1, tokens_out=1, model="m"
            )
        )
        assert LlmQueryEnhancer(client)("trust") == ["trustee", "living trust", "estate"]

    def test_http_errors_surface_as_client_errors(self):
        """A failing endpoint makes the enhancer raise, which search tolerates."""
        transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "down"}))
        client = ChatCompletionClient(
            base_url="http://llm.local", model="test", api_key=None, max_retries=0, transport=transport
        )
        service = SearchService(enhancer=LlmQueryEnhancer(client))
        assert service.expand("trust") == ["trust"]


class TestChatCompletionClient:
    """Tests for ChatCompletionClient."""

    def test_generate_posts_chat_request(self):
        """The request goes to /v1/chat/completions and the reply is unpacked."""
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(
                200,
                json={
                    "model": "served-model",
                    "choices": [{"message": {"content": "  trustee, estate  "}}],
                    "usage": {"prompt_tokens": 12, "completion_tokens": 3},
                },
            )

        client = ChatCompletionClient(
            base_url="http://llm.local/v1/",
            model="test",
            api_key="secret",
            max_retries=0,
            transport=httpx.MockTransport(handler),
        )
        response = client.generate("system", "trust", max_tokens=16)

        assert seen == {"url": "http://llm.local/v1/chat/completions", "auth": "Bearer secret"}
        assert response == AIResponse(content="trustee, estate", tokens_in=12, tokens_out=3, model="served-model")
