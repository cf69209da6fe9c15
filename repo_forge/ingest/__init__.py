"""
Ingest pipeline module for batch import of records into the repository store.
"""

from .pipeline import BatchPipeline, PipelineState
from .metrics import BatchMetrics
from .hooks import HookRegistry, register_relationship_hook, register_after_batch
from .draft import RepositoryObjectDraft
from .items import ImportItem
from .identifiers import IdentifierAllocator
from .policy import CollectionPolicy, CollectionPolicyCache, NamespaceResolver, PolicyLoader
from .datastreams import AssemblyResult, DatastreamAssembler
from .transform import DerivedDocumentGenerator, Transformer, XsltTransformer

__all__ = [
    'BatchPipeline',
    'PipelineState',
    'BatchMetrics',
    'HookRegistry',
    'register_relationship_hook',
    'register_after_batch',
    'RepositoryObjectDraft',
    'ImportItem',
    'IdentifierAllocator',
    'CollectionPolicy',
    'CollectionPolicyCache',
    'NamespaceResolver',
    'PolicyLoader',
    'AssemblyResult',
    'DatastreamAssembler',
    'DerivedDocumentGenerator',
    'Transformer',
    'XsltTransformer',
]
