"""Keyword search across contacts, projects and tasks.

An optional query enhancer may add related terms; each term is matched
with ``ILIKE`` and results are scored against the term that found them.
"""

import logging
from collections.abc import Callable
from typing import Protocol

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.contacts import Contact
from app.models.projects import Project, ProjectTask
from app.services.ai.client import AIClientError, ChatCompletionClient

logger = logging.getLogger(__name__)

MAX_RESULTS = 20
MAX_EXTRA_TERMS = 4
PER_TYPE_LIMIT = 50

ENHANCER_SYSTEM_PROMPT = (
    "You expand search queries for an estate-planning CRM. "
    "Reply with up to four short alternative keywords, comma separated, nothing else."
)


class QueryEnhancer(Protocol):
    def __call__(self, query: str) -> list[str]: ...


class LlmQueryEnhancer:
    """Asks a chat-completion endpoint for related search keywords."""

    def __init__(self, client: ChatCompletionClient):
        self.client = client

    def __call__(self, query: str) -> list[str]:
        response = self.client.generate(ENHANCER_SYSTEM_PROMPT, query, max_tokens=64)
        terms = [part.strip().strip('"') for part in response.content.replace("\n", ",").split(",")]
        return [term for term in terms if term]


def _score_text(value: str | None, term: str, exact: int, partial: int) -> int:
    if not value:
        return 0
    lowered = value.lower()
    if term not in lowered:
        return 0
    return exact if lowered == term else partial


def contact_relevance(contact: Contact, term: str) -> int:
    term = term.lower()
    fields = (contact.first_name, contact.last_name, contact.company, contact.email)
    return sum(_score_text(value, term, 100, 50) for value in fields)


def project_relevance(name: str | None, description: str | None, term: str) -> int:
    term = term.lower()
    score = _score_text(name, term, 100, 75)
    if description and term in description.lower():
        score += 25
    return score


def _summary(query: str, results: list[dict]) -> str:
    if not results:
        return f'No results found for "{query}". Try different keywords or check spelling.'
    types: list[str] = []
    for result in results:
        if result["type"] not in types:
            types.append(result["type"])
    plural = "" if len(results) == 1 else "s"
    return f'Found {len(results)} result{plural} across {", ".join(types)} for "{query}".'


class SearchService:
    def __init__(self, enhancer: QueryEnhancer | Callable[[str], list[str]] | None = None):
        self.enhancer = enhancer

    def expand(self, query: str) -> list[str]:
        terms = [query]
        if self.enhancer is None:
            return terms
        try:
            extra = self.enhancer(query)
        except (AIClientError, ValueError, TypeError):
            logger.warning("search_enhancer_failed query=%s", query, exc_info=True)
            return terms
        for term in extra or []:
            if not isinstance(term, str):
                continue
            term = term.strip()
            if term and term.lower() not in (existing.lower() for existing in terms):
                terms.append(term)
            if len(terms) > MAX_EXTRA_TERMS:
                break
        return terms

    def _contacts(self, db: Session, term: str) -> list[dict]:
        like_term = f"%{term}%"
        rows = (
            db.query(Contact)
            .filter(
                or_(
                    Contact.first_name.ilike(like_term),
                    Contact.last_name.ilike(like_term),
                    Contact.company.ilike(like_term),
                    Contact.email.ilike(like_term),
                )
            )
            .limit(PER_TYPE_LIMIT)
            .all()
        )
        return [
            {
                "id": str(contact.id),
                "type": "contact",
                "title": contact.full_name,
                "content": " • ".join(value for value in (contact.company, contact.email, contact.phone) if value),
                "relevance": contact_relevance(contact, term),
                "metadata": {
                    "contact_name": contact.full_name,
                    "date": contact.created_at.isoformat() if contact.created_at else None,
                },
            }
            for contact in rows
        ]

    def _projects(self, db: Session, term: str) -> list[dict]:
        like_term = f"%{term}%"
        rows = (
            db.query(Project)
            .filter(Project.is_active.is_(True))
            .filter(or_(Project.name.ilike(like_term), Project.description.ilike(like_term)))
            .limit(PER_TYPE_LIMIT)
            .all()
        )
        return [
            {
                "id": str(project.id),
                "type": "project",
                "title": project.name,
                "content": project.description or "No description available",
                "relevance": project_relevance(project.name, project.description, term),
                "metadata": {
                    "project_name": project.name,
                    "date": (project.due_date or project.created_at).isoformat()
                    if (project.due_date or project.created_at)
                    else None,
                },
            }
            for project in rows
        ]

    def _tasks(self, db: Session, term: str) -> list[dict]:
        like_term = f"%{term}%"
        rows = (
            db.query(ProjectTask)
            .filter(ProjectTask.is_active.is_(True))
            .filter(or_(ProjectTask.title.ilike(like_term), ProjectTask.description.ilike(like_term)))
            .limit(PER_TYPE_LIMIT)
            .all()
        )
        return [
            {
                "id": str(task.id),
                "type": "task",
                "title": task.title,
                "content": task.description or "No description available",
                "relevance": project_relevance(task.title, task.description, term),
                "metadata": {
                    "task_name": task.title,
                    "project_id": str(task.project_id),
                    "date": (task.due_date or task.created_at).isoformat()
                    if (task.due_date or task.created_at)
                    else None,
                },
            }
            for task in rows
        ]

    def search(self, db: Session, query: str) -> dict:
        query = query.strip()
        terms = self.expand(query) if query else []
        merged: dict[tuple[str, str], dict] = {}
        for term in terms:
            for result in self._contacts(db, term) + self._projects(db, term) + self._tasks(db, term):
                key = (result["type"], result["id"])
                current = merged.get(key)
                if current is None or result["relevance"] > current["relevance"]:
                    merged[key] = result
        results = sorted(merged.values(), key=lambda r: (-r["relevance"], r["title"].lower(), r["id"]))
        results = results[:MAX_RESULTS]
        logger.info("search_completed query=%s terms=%s results=%s", query, len(terms), len(results))
        return {"query": query, "terms": terms, "results": results, "summary": _summary(query, results)}
