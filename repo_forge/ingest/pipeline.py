"""
Two-phase batch ingest pipeline.

Items are pulled from an import source, preprocessed into repository object
drafts (namespace, identifier, relationships) and then committed to the
repository store. Work is driven through ``step(context, state)`` so a batch
driver can persist the ``BatchContext`` between invocations and resume a
partially processed source.
"""

import logging
import time
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from repo_forge.config.settings import Settings, get_settings
from repo_forge.ingest.datastreams import DatastreamAssembler
from repo_forge.ingest.draft import RepositoryObjectDraft
from repo_forge.ingest.exceptions import DraftStateError
from repo_forge.ingest.hooks import HookRegistry, get_global_registry
from repo_forge.ingest.identifiers import IdentifierAllocator
from repo_forge.ingest.items import ImportItem
from repo_forge.ingest.metrics import BatchMetrics
from repo_forge.ingest.policy import (
    CollectionPolicyCache,
    NamespaceResolver,
    PolicyLoader,
    RepositoryPolicyLoader,
)
from repo_forge.ingest.sources.base import ImportSource
from repo_forge.ingest.transform import DerivedDocumentGenerator, XsltTransformer
from repo_forge.models.batch import (
    BatchContext,
    BatchResult,
    DraftState,
    ErrorKind,
    IngestErrorRecord,
    PipelinePhase,
)
from repo_forge.models.repository import IS_MEMBER_OF
from repo_forge.store.base import RepositoryClient
from repo_forge.store.exceptions import IdentifierAllocationError, RepositoryError


logger = logging.getLogger(__name__)


@dataclass
class PipelineState:
    """
    In-process state of one batch run.

    Only ``BatchContext`` is meant to outlive the process; this state is
    rebuilt on resume and ``consumed`` tells the pipeline how far the freshly
    opened source still lags behind the persisted progress.
    """

    source: ImportSource
    phase: PipelinePhase = PipelinePhase.PREPROCESS
    consumed: int = 0
    drafts: List[RepositoryObjectDraft] = field(default_factory=list)
    pending: List[RepositoryObjectDraft] = field(default_factory=list)
    errors: List[IngestErrorRecord] = field(default_factory=list)
    metrics: BatchMetrics = field(default_factory=BatchMetrics)

    def _in_state(self, draft_state: DraftState) -> List[RepositoryObjectDraft]:
        return [draft for draft in self.drafts if draft.state is draft_state]

    @property
    def committed(self) -> List[RepositoryObjectDraft]:
        return self._in_state(DraftState.COMMITTED)

    @property
    def failed(self) -> List[RepositoryObjectDraft]:
        return self._in_state(DraftState.ERROR)

    def to_result(self) -> BatchResult:
        return BatchResult(
            committed=self.committed,
            failed=self.failed,
            pending=list(self.pending),
            errors=list(self.errors),
            metrics=self.metrics,
        )


class BatchPipeline:
    """
    Orchestrates a batch ingest:
    1. Extraction of items from the source
    2. Preprocessing into drafts (namespace, identifier, relationships, hooks)
    3. Commit of each draft (label, datastreams, store writes)
    4. After-batch hooks and metrics
    """

    def __init__(self,
                 client: RepositoryClient,
                 parent_id: Optional[str] = None,
                 config: Optional[Settings] = None,
                 hook_registry: Optional[HookRegistry] = None,
                 generator: Optional[DerivedDocumentGenerator] = None,
                 policy_loader: Optional[PolicyLoader] = None,
                 allocator: Optional[IdentifierAllocator] = None,
                 assembler: Optional[DatastreamAssembler] = None):
        """
        Initialize batch pipeline.

        Args:
            client: Repository store client (already connected)
            parent_id: Container every object becomes a member of
            config: Application configuration (uses default if None)
            hook_registry: Hook registry (uses global if None)
            generator: Title/derived document generator (built from config if None)
            policy_loader: Collection policy lookup (reads the parent's policy datastream if None)
            allocator: Identifier allocator (one per pipeline if None)
            assembler: Datastream assembler (built from config if None)
        """
        self.client = client
        self.parent_id = parent_id
        self.config = config or get_settings()
        self.ingest = self.config.ingest

        self.hook_registry = hook_registry or get_global_registry()
        self.generator = generator or DerivedDocumentGenerator(definition=self.ingest.transform)
        self.policy_loader = policy_loader or RepositoryPolicyLoader(client, self.config.repository.policy_dsid)
        self.resolver = NamespaceResolver(self.policy_loader, CollectionPolicyCache())
        self.allocator = allocator or IdentifierAllocator(client)
        self.assembler = assembler or DatastreamAssembler.from_config(self.ingest)

        self._state_lock = threading.Lock()

        logger.info(f"Initialized BatchPipeline: parent={parent_id}, "
                    f"items_per_step={self.ingest.items_per_step}, "
                    f"commit_immediately={self.ingest.commit_immediately}, "
                    f"transform={self.generator.definition}")

    @property
    def policy_cache(self) -> CollectionPolicyCache:
        return self.resolver.cache

    def new_state(self, source: ImportSource) -> PipelineState:
        return PipelineState(source=source)

    def run(self, source: ImportSource, context: Optional[BatchContext] = None) -> BatchResult:
        """
        Execute the complete batch, step by step.

        Args:
            source: Import source (owned by the caller)
            context: Persisted progress to resume from

        Returns:
            BatchResult with committed/failed drafts, error records and metrics

        Raises:
            TransformError: If the configured transform cannot be loaded
            Exception: For unexpected failures outside per-draft handling
        """
        context = context if context is not None else BatchContext()
        state = self.new_state(source)
        logger.info(f"Starting batch ingest from {source.format_name} source")

        try:
            while state.phase is not PipelinePhase.DONE:
                context, state = self.step(context, state)
        except Exception as e:
            state.metrics.finalize()
            logger.error(f"Batch ingest failed: {e}")
            raise

        state.metrics.finalize()
        result = state.to_result()

        if result.committed or result.failed:
            logger.info(f"Executing batch completion hooks for {len(state.drafts)} drafts")
            self.hook_registry.run_after_batch(result, self.client)

        logger.info(f"Batch ingest completed: {state.metrics}")
        return result

    def step(self, context: BatchContext, state: PipelineState) -> Tuple[BatchContext, PipelineState]:
        """
        Perform one unit of work.

        A step preprocesses up to ``items_per_step`` items (committing them
        right away when ``commit_immediately`` is set) or, once the source is
        exhausted and commits were deferred, commits every pending draft.

        Returns:
            The updated (context, state) pair; ``state.phase`` is DONE when
            there is nothing left to do
        """
        if state.phase is PipelinePhase.DONE:
            return context, state

        self._start(context, state)

        if state.phase is PipelinePhase.AWAITING_COMMIT:
            self.commit_pending(state, context)
            state.phase = PipelinePhase.DONE
            return context, state

        drafts = self._preprocess_step(context, state)

        if self.ingest.commit_immediately:
            start = time.time()
            for draft in drafts:
                self.commit(draft, context, state)
            state.metrics.add_commit_time(time.time() - start)
        else:
            state.pending.extend(drafts)
        self._update_checkpoint(context, state)

        if context.finished:
            state.phase = PipelinePhase.AWAITING_COMMIT if state.pending else PipelinePhase.DONE
            logger.debug(f"Source exhausted at {context.progress}/{context.max}, phase {state.phase.value}")

        return context, state

    def preprocess(self, source: ImportSource, context: Optional[BatchContext] = None) -> List[RepositoryObjectDraft]:
        """
        Preprocess every remaining item of ``source`` without committing.

        Returns:
            Drafts that reached PREPROCESSED, in extraction order
        """
        context = context if context is not None else BatchContext()
        state = self.new_state(source)
        self._start(context, state)

        drafts = []
        while not context.finished:
            drafts.extend(self._preprocess_step(context, state))
        return drafts

    def commit(self, draft: RepositoryObjectDraft, context: Optional[BatchContext] = None,
               state: Optional[PipelineState] = None) -> DraftState:
        """
        Commit one preprocessed draft to the store.

        Missing documents are recorded and the object is still created with
        whatever datastreams could be assembled. A store error, or any other
        failure while titling or assembling the item, moves this draft alone
        to ERROR; its temp artifacts are removed either way.

        Returns:
            The draft's final state

        Raises:
            DraftStateError: If the draft is not PREPROCESSED
        """
        if draft.state is not DraftState.PREPROCESSED:
            raise DraftStateError(draft.identifier, draft.state, DraftState.COMMITTED)

        context = context if context is not None else BatchContext()
        metrics = state.metrics if state is not None else None
        item = draft.item

        try:
            draft.label = item.title()

            if draft.identifier is None and not self._assign_identifier(draft, context, state):
                return draft.state

            assembly = self.assembler.assemble(item, draft.identifier)
            draft.temp_artifacts.extend(assembly.temp_artifacts)
            for error in assembly.errors:
                self._record_error(draft, state, error)
            if metrics is not None and assembly.errors:
                metrics.record_missing_document(len(assembly.errors))
            for descriptor in assembly.descriptors:
                draft.add_datastream(descriptor)

            obj = self.client.create_object(
                draft.identifier,
                label=draft.label,
                content_models=draft.content_models,
                relationships=draft.relationships,
            )
            for descriptor in draft.datastreams:
                self.client.attach_datastream(obj, descriptor)
        except RepositoryError as e:
            self._fail(draft, state, IngestErrorRecord(
                kind=ErrorKind.STORE_REJECTION,
                message=str(e),
                dsid=getattr(e, "dsid", None),
                identifier=draft.identifier,
            ))
        except Exception as e:
            if draft.is_terminal:
                raise
            logger.debug(f"Commit of {item.name or 'item'} raised", exc_info=True)
            self._fail(draft, state, IngestErrorRecord(
                kind=ErrorKind.ITEM_FAILURE,
                message=str(e) or type(e).__name__,
                identifier=draft.identifier,
            ))
        else:
            draft.transition(DraftState.COMMITTED)
            if metrics is not None:
                metrics.record_committed()
            logger.info(f"Committed {draft.identifier} ({draft.label or 'untitled'}) "
                        f"with {len(draft.datastreams)} datastreams")
        finally:
            if not self.ingest.keep_artifacts:
                DatastreamAssembler.cleanup(draft.temp_artifacts)
                draft.temp_artifacts.clear()

        return draft.state

    def commit_pending(self, state: PipelineState, context: Optional[BatchContext] = None) -> None:
        """
        Commit every pending draft (the deferred commit pass).

        Drafts leave ``state.pending`` as they are committed, and the context
        checkpoint follows the first draft still waiting.
        """
        pending = list(state.pending)
        if not pending:
            return

        logger.info(f"Committing {len(pending)} deferred drafts")
        start = time.time()
        workers = self.ingest.commit_workers

        if workers > 1 and len(pending) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                list(executor.map(lambda draft: self.commit(draft, context, state), pending))
            state.pending.clear()
        else:
            for draft in pending:
                self.commit(draft, context, state)
                state.pending.remove(draft)
                self._update_checkpoint(context, state)

        self._update_checkpoint(context, state)
        state.metrics.add_commit_time(time.time() - start)

    def _start(self, context: BatchContext, state: PipelineState) -> None:
        """Fix the batch size on first use and fast-forward a resumed source."""
        if state.consumed == 0 and not state.drafts:
            self._validate_setup()
            if context.unsettled:
                # deferred drafts died with the previous process
                logger.warning(f"Rewinding from item {context.progress} to {context.checkpoint}: "
                               f"{context.unsettled} preprocessed items were never committed")
                context.progress = context.checkpoint
        if not context.started:
            context.max = state.source.count()
            logger.info(f"Source reports {context.max} items")
        if not state.metrics.items_expected:
            state.metrics.items_expected = context.max

        lag = context.progress - state.consumed
        if lag > 0:
            logger.info(f"Resuming at item {context.progress + 1} of {context.max}")
            state.consumed += state.source.skip(lag)

    @staticmethod
    def _update_checkpoint(context: Optional[BatchContext], state: PipelineState) -> None:
        """Move the checkpoint to the first pending draft, or up to progress."""
        if context is None:
            return
        positions = [draft.position for draft in state.pending if draft.position is not None]
        context.checkpoint = min(positions) if positions else context.progress

    def _validate_setup(self) -> None:
        """Fail before the first item if the transform definition is unusable."""
        if isinstance(self.generator.transformer, XsltTransformer):
            self.generator.transformer.load(self.generator.definition)

    def _preprocess_step(self, context: BatchContext, state: PipelineState) -> List[RepositoryObjectDraft]:
        """Preprocess up to ``items_per_step`` items; returns the PREPROCESSED drafts."""
        start = time.time()
        drafts = []
        attempts = 0

        while attempts < self.ingest.items_per_step and not context.finished:
            attempts += 1
            item = state.source.extract_one(self.generator)
            state.consumed += 1
            state.metrics.record_extraction(item is not None)

            if item is None:
                logger.debug(f"No item at position {context.progress + 1}/{context.max}")
            else:
                draft = self._preprocess_item(item, context, state)
                if draft.state is DraftState.PREPROCESSED:
                    drafts.append(draft)

            context.advance()

        state.metrics.add_preprocess_time(time.time() - start)
        return drafts

    def _preprocess_item(self, item: ImportItem, context: BatchContext,
                         state: PipelineState) -> RepositoryObjectDraft:
        draft = RepositoryObjectDraft.for_item(item, self.parent_id)
        draft.position = context.progress
        draft.namespace = self.resolver.resolve(item, self.parent_id)
        state.drafts.append(draft)

        if self.ingest.preallocate_identifiers and not self._assign_identifier(draft, context, state):
            return draft

        if self.parent_id:
            draft.add_relationship(IS_MEMBER_OF, self.parent_id)
        item.modify_relationships(draft)
        self.hook_registry.run_relationship_hooks(draft, self.client)

        draft.transition(DraftState.PREPROCESSED)
        state.metrics.record_preprocessed()
        logger.debug(f"Preprocessed {item.name or 'item'} as {draft.identifier or draft.namespace}")
        return draft

    def _assign_identifier(self, draft: RepositoryObjectDraft, context: BatchContext,
                           state: Optional[PipelineState]) -> bool:
        metrics = state.metrics if state is not None else None
        try:
            draft.identifier = self.allocator.allocate(draft.namespace, context, metrics)
            return True
        except IdentifierAllocationError as e:
            self._fail(draft, state, IngestErrorRecord(
                kind=ErrorKind.IDENTIFIER_ALLOCATION,
                message=str(e),
            ))
            return False

    def _record_error(self, draft: RepositoryObjectDraft, state: Optional[PipelineState],
                      error: IngestErrorRecord) -> None:
        draft.record_error(error)
        if state is not None:
            with self._state_lock:
                state.errors.append(error)

    def _fail(self, draft: RepositoryObjectDraft, state: Optional[PipelineState],
              error: IngestErrorRecord) -> None:
        self._record_error(draft, state, error)
        draft.transition(DraftState.ERROR)
        if state is not None:
            state.metrics.record_failed(str(error))
        logger.error(f"Failed {draft.item.name or 'item'}: {error}")
