"""
Collection policies and namespace resolution.

A parent collection declares, in its policy datastream, which content
models may be ingested into it and which PID namespace each one implies.
Items take the namespace of the first applicable content model in policy
order, falling back to their own default.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Union

from lxml import etree

from repo_forge.ingest.transform import parse_xml
from repo_forge.store.base import RepositoryClient
from repo_forge.store.exceptions import RepositoryError

if TYPE_CHECKING:
    from repo_forge.ingest.items import ImportItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyContentModel:
    """One ``content_model`` entry of a collection policy."""

    pid: str
    namespace: Optional[str]
    name: str = ""


class CollectionPolicy:
    """Parsed collection policy document."""

    def __init__(self, content_models: List[PolicyContentModel], name: str = ""):
        self.content_models = list(content_models)
        self.name = name

    @classmethod
    def from_xml(cls, document: Union[str, bytes]) -> "CollectionPolicy":
        """
        Parse a policy document.

        Elements are matched by local name, so documents with or without
        the policy XML namespace are accepted. ``namespace`` attributes such
        as ``"ns1:collection"`` are reduced to their prefix.

        Raises:
            etree.XMLSyntaxError: If the document is not well-formed
        """
        root = parse_xml(document)

        entries = []
        for element in root.xpath("//*[local-name()='content_models']/*[local-name()='content_model']"):
            pid = (element.get("pid") or "").strip()
            if not pid:
                continue
            namespace = (element.get("namespace") or "").split(":", 1)[0].strip() or None
            entries.append(PolicyContentModel(pid=pid, namespace=namespace, name=element.get("name", "")))

        return cls(entries, name=root.get("name", ""))

    def applicable_models(self) -> Dict[str, Optional[str]]:
        """Content model -> namespace, in declared order (first declaration wins)."""
        models: Dict[str, Optional[str]] = OrderedDict()
        for entry in self.content_models:
            models.setdefault(entry.pid, entry.namespace)
        return models

    def first_match(self, content_models: Iterable[str]) -> Optional[PolicyContentModel]:
        """First policy entry, in policy order, among ``content_models``."""
        wanted = set(content_models)
        for entry in self.content_models:
            if entry.pid in wanted:
                return entry
        return None

    def __repr__(self) -> str:
        return f"CollectionPolicy(name={self.name!r}, models={list(self.applicable_models())})"


class PolicyLoader(ABC):
    """Looks up the policy of a parent container."""

    @abstractmethod
    def load_policy(self, parent_id: str) -> Optional[CollectionPolicy]:
        """Returns the parsed policy, or None if the parent has none."""
        pass


class RepositoryPolicyLoader(PolicyLoader):
    """Reads the policy datastream of the parent object from the store."""

    def __init__(self, client: RepositoryClient, dsid: str = "COLLECTION_POLICY"):
        self.client = client
        self.dsid = dsid

    def load_policy(self, parent_id: str) -> Optional[CollectionPolicy]:
        parent = self.client.load_object(parent_id)
        if parent is None:
            logger.debug(f"Parent {parent_id} not found, no collection policy")
            return None

        datastream = parent.get_datastream(self.dsid)
        if datastream is None or not datastream.content:
            logger.debug(f"Parent {parent_id} has no {self.dsid} datastream")
            return None

        try:
            return CollectionPolicy.from_xml(datastream.content)
        except etree.XMLSyntaxError as e:
            logger.warning(f"Ignoring malformed {self.dsid} on {parent_id}: {e}")
            return None


class CollectionPolicyCache:
    """
    Policies by parent id for the duration of one pipeline run.

    Absent policies are cached as None, so each parent is looked up at
    most once.
    """

    def __init__(self):
        self._policies: Dict[str, Optional[CollectionPolicy]] = {}
        self._lock = threading.Lock()
        self.lookups = 0

    def get(self, parent_id: str, loader: PolicyLoader) -> Optional[CollectionPolicy]:
        with self._lock:
            if parent_id not in self._policies:
                self.lookups += 1
                try:
                    self._policies[parent_id] = loader.load_policy(parent_id)
                except RepositoryError as e:
                    logger.warning(f"Could not load collection policy for {parent_id}: {e}")
                    self._policies[parent_id] = None
            return self._policies[parent_id]

    def __contains__(self, parent_id: str) -> bool:
        return parent_id in self._policies

    def __len__(self) -> int:
        return len(self._policies)

    def clear(self) -> None:
        with self._lock:
            self._policies.clear()


class NamespaceResolver:
    """Chooses the namespace an item draws its identifier from."""

    def __init__(self, loader: PolicyLoader, cache: Optional[CollectionPolicyCache] = None):
        self.loader = loader
        self.cache = cache if cache is not None else CollectionPolicyCache()

    def resolve(self, item: "ImportItem", parent_id: Optional[str]) -> str:
        """
        Resolve the namespace for ``item`` ingested under ``parent_id``.

        Returns:
            Namespace of the first policy content model the item declares,
            or ``item.pid_namespace`` when there is no parent, no policy, no
            overlap, or the matching entry names no namespace
        """
        if not parent_id:
            return item.pid_namespace

        policy = self.cache.get(parent_id, self.loader)
        if policy is None:
            return item.pid_namespace

        match = policy.first_match(item.content_models)
        if match is None or not match.namespace:
            return item.pid_namespace

        if match.namespace != item.pid_namespace:
            logger.debug(f"{item.name}: namespace {match.namespace} from policy of {parent_id} ({match.pid})")
        return match.namespace
