"""
Log filter translation.

An Ethereum filter carries ``address`` (one address or a list) and
``topics`` (positional slots, each a topic, a list of alternatives or
null). The chain client instead takes a list of criteria objects::

    [{"address": ..., "topic0": ..., "topic1": ...}, ...]

matched as a logical OR across entries and a logical AND across the slots
populated within one entry.

Pairing rules:
  - scalar (or absent) ``address``: ``topics`` is the topic array for it
  - list ``address``: ``address[i]`` pairs with ``topics[i]``, which is that
    address's own topic array; a missing ``topics[i]`` means no constraints
"""

from itertools import product
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from ..constants import MAX_FILTER_CRITERIA, MAX_TOPICS, VALID_ADDRESS_PATTERN
from ..exceptions import InvalidFilterError

Criteria = Dict[str, str]
TopicSlot = Union[str, Sequence[str], None]

_SLOT_KEYS = tuple(f"topic{i}" for i in range(MAX_TOPICS))


def _pair_with_topics(
    addresses: Sequence[Optional[str]],
    topics: Sequence[Any],
) -> Iterator[Tuple[Optional[str], Sequence[TopicSlot]]]:
    """Zip addresses with their topic arrays, padding the shorter side with no constraints."""
    for i, address in enumerate(addresses):
        yield address, (topics[i] if i < len(topics) else None) or []


def _slot_alternatives(slot: TopicSlot) -> List[Optional[str]]:
    """Alternatives for one slot; ``[None]`` stands for "unconstrained"."""
    if isinstance(slot, (list, tuple)):
        values = [t for t in slot if t]
        return values or [None]
    return [slot or None]


def _expand(address: Optional[str], topic_array: Sequence[TopicSlot]) -> Iterator[Criteria]:
    slots = [_slot_alternatives(s) for s in list(topic_array)[:MAX_TOPICS]]
    for combo in product(*slots):
        c: Criteria = {}
        if address:
            c["address"] = address
        for key, topic in zip(_SLOT_KEYS, combo):
            if topic:
                c[key] = topic
        yield c


def build_filter_criteria(
    address: Union[str, Sequence[str], None],
    topics: Optional[Sequence[Any]] = None,
) -> List[Criteria]:
    """
    Expand an Ethereum filter into chain criteria.

    Topic slots are copied only when present and truthy. Lists of
    alternatives in a slot become separate entries so that the chain's
    OR-across-entries reproduces Ethereum's OR-per-position.
    """
    topics = list(topics or [])
    if isinstance(address, (list, tuple)):
        pairs: Iterable = _pair_with_topics(list(address), topics)
    else:
        pairs = [(address, topics)]

    criteria: List[Criteria] = []
    for addr, topic_array in pairs:
        criteria.extend(_expand(addr, topic_array))
    return criteria


def _is_address(value: Any) -> bool:
    return isinstance(value, str) and VALID_ADDRESS_PATTERN.match(value) is not None


def _check_topic_array(field: str, topic_array: Any) -> int:
    """Validate one topic array and return how many entries it expands into."""
    if not isinstance(topic_array, (list, tuple)):
        raise InvalidFilterError(field, "topics must be an array")
    if len(topic_array) > MAX_TOPICS:
        raise InvalidFilterError(field, f"at most {MAX_TOPICS} topic slots are supported")

    combinations = 1
    for slot in topic_array:
        if slot is None:
            continue
        if isinstance(slot, (list, tuple)):
            if not all(isinstance(t, str) or t is None for t in slot):
                raise InvalidFilterError(field, "topic alternatives must be hex strings")
            combinations *= max(1, len([t for t in slot if t]))
        elif not isinstance(slot, str):
            raise InvalidFilterError(field, "topic must be a hex string")
    return combinations


def validate_filter_request(
    address: Any,
    topics: Any,
    max_criteria: int = MAX_FILTER_CRITERIA,
) -> None:
    """
    Reject filters the criteria model cannot express.

    Raises:
        InvalidFilterError: on a malformed address, more than four topic
            slots, ``topics`` longer than an address list, or an expansion
            beyond ``max_criteria`` entries.
    """
    if topics is None:
        topics = []

    if isinstance(address, (list, tuple)):
        if not all(_is_address(a) for a in address):
            raise InvalidFilterError("address", "addresses must be 20-byte hex strings")
        if not isinstance(topics, (list, tuple)):
            raise InvalidFilterError("topics", "topics must be an array")
        if len(topics) > len(address):
            raise InvalidFilterError(
                "topics",
                "topics has more entries than address; each address takes the topic array at its index",
            )
        total = 0
        for topic_array in topics:
            total += _check_topic_array("topics", topic_array or [])
        total += len(address) - len(topics)
    else:
        if address is not None and not _is_address(address):
            raise InvalidFilterError("address", "address must be a 20-byte hex string or an array of them")
        total = _check_topic_array("topics", topics)

    if total > max_criteria:
        raise InvalidFilterError("topics", f"filter expands to {total} criteria (max {max_criteria})")


def _matches(log: Dict[str, Any], c: Criteria) -> bool:
    if "address" in c and str(log.get("address", "")).lower() != c["address"].lower():
        return False
    log_topics = log.get("topics") or []
    for i, key in enumerate(_SLOT_KEYS):
        if key not in c:
            continue
        if i >= len(log_topics) or log_topics[i].lower() != c[key].lower():
            return False
    return True


def criteria_match(log: Dict[str, Any], criteria: Sequence[Criteria]) -> bool:
    """Evaluate criteria against an Ethereum-shaped log. An empty list matches everything."""
    if not criteria:
        return True
    return any(_matches(log, c) for c in criteria)
