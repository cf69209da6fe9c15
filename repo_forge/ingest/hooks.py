"""
Hook registry for extending ingest pipeline behavior.
"""

import logging
from typing import TYPE_CHECKING, Callable, Dict, List

from repo_forge.store.base import RepositoryClient

if TYPE_CHECKING:
    from repo_forge.ingest.draft import RepositoryObjectDraft
    from repo_forge.models.batch import BatchResult


logger = logging.getLogger(__name__)


RelationshipHook = Callable[["RepositoryObjectDraft", RepositoryClient], None]
AfterBatchHook = Callable[["BatchResult", RepositoryClient], None]


class HookRegistry:
    """
    Registry for managing ingest pipeline hooks.

    Hooks allow custom behavior to be injected at specific points:
    - relationship: Adjust a draft's relationships during preprocessing
      (e.g. propagate the parent's access policy)
    - after_batch: Inspect the result once a run has finished
    """

    def __init__(self):
        self._relationship_hooks: List[RelationshipHook] = []
        self._after_batch_hooks: List[AfterBatchHook] = []

    def register_relationship_hook(self, func: RelationshipHook) -> None:
        """
        Register a relationship hook.

        Args:
            func: Hook function with signature:
                  (draft: RepositoryObjectDraft, client: RepositoryClient) -> None
        """
        if not callable(func):
            raise ValueError("Hook must be callable")

        self._relationship_hooks.append(func)
        logger.debug(f"Registered relationship hook: {func.__name__}")

    def register_after_batch(self, func: AfterBatchHook) -> None:
        """
        Register an after_batch hook.

        Args:
            func: Hook function with signature:
                  (result: BatchResult, client: RepositoryClient) -> None
        """
        if not callable(func):
            raise ValueError("Hook must be callable")

        self._after_batch_hooks.append(func)
        logger.debug(f"Registered after_batch hook: {func.__name__}")

    def run_relationship_hooks(self, draft: "RepositoryObjectDraft", client: RepositoryClient) -> None:
        """
        Execute all relationship hooks against ``draft``.

        Notes:
            - Hooks are executed in registration order and mutate the draft
            - Hook exceptions are logged as warnings and do not abort the draft
        """
        for hook in self._relationship_hooks:
            try:
                hook(draft, client)
            except Exception as e:
                logger.warning(f"Hook {hook.__name__} failed: {e}", exc_info=True)

    def run_after_batch(self, result: "BatchResult", client: RepositoryClient) -> None:
        """Execute all after_batch hooks; failures are logged and ignored."""
        for hook in self._after_batch_hooks:
            try:
                hook(result, client)
            except Exception as e:
                logger.warning(f"Hook {hook.__name__} failed: {e}", exc_info=True)

    def clear_hooks(self) -> None:
        """Clear all registered hooks (primarily for testing)."""
        self._relationship_hooks.clear()
        self._after_batch_hooks.clear()
        logger.debug("Cleared all hooks")

    @property
    def hook_count(self) -> Dict[str, int]:
        """Get count of registered hooks by type."""
        return {
            'relationship': len(self._relationship_hooks),
            'after_batch': len(self._after_batch_hooks)
        }


# Global registry instance
_global_registry = HookRegistry()


def register_relationship_hook(func: RelationshipHook) -> RelationshipHook:
    """
    Decorator to register a relationship hook.

    Example:
        @register_relationship_hook
        def inherit_policy(draft, client):
            if draft.parent_id:
                draft.add_relationship("isGovernedBy", draft.parent_id)
    """
    _global_registry.register_relationship_hook(func)
    return func


def register_after_batch(func: AfterBatchHook) -> AfterBatchHook:
    """
    Decorator to register an after_batch hook.

    Example:
        @register_after_batch
        def report(result, client):
            print(f"Committed {result.committed_count} objects")
    """
    _global_registry.register_after_batch(func)
    return func


def get_global_registry() -> HookRegistry:
    """Get the global hook registry instance."""
    return _global_registry


def clear_global_hooks() -> None:
    """Clear all hooks from global registry (for testing)."""
    _global_registry.clear_hooks()
