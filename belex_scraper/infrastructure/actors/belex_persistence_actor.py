"""
BELEX Persistence Actor

Single writer of the pipeline. Reconciles the law text header of each
document and then every article paragraph in page order.

Because the mailbox is processed one message at a time, no two
reconciliations ever run concurrently, whatever the number of senders.
"""
import logging
from collections import Counter
from typing import Optional

from belex_scraper.application.reconciliation_service import ReconciliationService
from belex_scraper.domain.belex_entities import ExtractedParagraph, ReconcileOutcome
from belex_scraper.infrastructure.actors.base import BelexBaseActor
from belex_scraper.infrastructure.actors.belex_messages import (
    ReconcileDocument,
    DocumentReconciled,
)


logger = logging.getLogger(__name__)


class BelexPersistenceActor(BelexBaseActor):
    """
    Actor that persists parsed documents through the reconciliation engine.

    Handles:
    - ReconcileDocument: reconcile header and articles, reply DocumentReconciled

    A ReconciliationError aborts the rest of the current document; it reaches
    the asker as an ActorError reply.
    """

    def __init__(
        self,
        service: ReconciliationService,
        actor_id: Optional[str] = None,
        supervisor: Optional[BelexBaseActor] = None,
    ):
        """
        Initialize the persistence actor.

        Args:
            service: Reconciliation engine bound to the store
        """
        super().__init__(actor_id=actor_id or "belex-persistence", supervisor=supervisor)
        self._service = service
        self._outcomes: Counter = Counter()

    @property
    def service(self) -> ReconciliationService:
        return self._service

    @property
    def outcomes(self) -> Counter:
        """Reconcile outcomes seen so far, keyed by (kind, outcome)."""
        return Counter(self._outcomes)

    async def handle_reconcile_document(self, msg: ReconcileDocument) -> DocumentReconciled:
        document = msg.document
        header = document.header

        if not header.systematic_number:
            logger.warning(f"Skipping document without systematic number: {header.source_url}")
            return DocumentReconciled(systematic_number=None)

        law_text = await self._service.reconcile_law_text(header)
        self._outcomes[("lawtext", law_text.outcome)] += 1

        article_outcomes: Counter = Counter()
        for article in document.articles:
            for paragraph in article.paragraphs or (ExtractedParagraph(),):
                result = await self._service.reconcile_article(
                    header.systematic_number,
                    header.abbreviation,
                    article,
                    paragraph,
                )
                article_outcomes[result.outcome] += 1

        for outcome, count in article_outcomes.items():
            self._outcomes[("article", outcome)] += count

        reply = DocumentReconciled(
            systematic_number=header.systematic_number,
            law_text_outcome=law_text.outcome,
            articles_inserted=article_outcomes[ReconcileOutcome.INSERTED],
            articles_updated=article_outcomes[ReconcileOutcome.UPDATED],
            articles_unchanged=article_outcomes[ReconcileOutcome.NO_OP_EXISTING],
        )
        logger.info(
            f"Reconciled {header.systematic_number}: lawtext {law_text.outcome.value}, "
            f"{reply.article_count} article records "
            f"({reply.articles_inserted} inserted, {reply.articles_updated} updated)"
        )
        return reply
