"""
Resolve the list of subscriptions to process.

Without an input file every subscription the signed-in identity can see is
used. With a file, identifiers are read from a line-delimited .txt file or
from the id column of a .csv/.tsv file, checked for GUID shape, de-duplicated
and looked up one by one. Bad identifiers are dropped with a warning.
"""

from __future__ import annotations

import csv
import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional

from azure.core.exceptions import ClientAuthenticationError, HttpResponseError

from aobo_access.control_plane import TargetScope
from aobo_access.errors import (
    InputFileNotFoundError,
    MissingColumnError,
    NoValidInputError,
    NotAuthenticatedError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)

GUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
ID_COLUMN_PATTERN = re.compile(r"^(subscription|sub)*id$", re.IGNORECASE)

LINE_DELIMITED_EXTENSIONS = (".txt",)
TABULAR_DELIMITERS = {".csv": ",", ".tsv": "\t"}


def is_valid_subscription_id(value: str) -> bool:
    return bool(value) and GUID_PATTERN.match(value.strip()) is not None


def find_id_column(fieldnames: Iterable[str]) -> Optional[str]:
    """Return the first header that names a subscription id column."""
    for name in fieldnames or []:
        if name is not None and ID_COLUMN_PATTERN.match(name.strip()):
            return name
    return None


def _read_lines(path: Path) -> List[str]:
    # utf-8-sig drops the BOM Excel and PowerShell like to write
    with open(path, mode="r", encoding="utf-8-sig") as fh:
        return [line.strip() for line in fh if line.strip()]


def _read_table(path: Path, delimiter: str) -> List[str]:
    with open(path, mode="r", newline="", encoding="utf-8-sig") as fh:
        reader = csv.DictReader(fh, delimiter=delimiter)
        if reader.fieldnames is None:
            raise NoValidInputError(f"Input file {path} is empty")
        column = find_id_column(reader.fieldnames)
        if column is None:
            raise MissingColumnError(
                f"No subscription id column found in {path}. "
                "Expected a header named 'Id', 'SubscriptionId' or 'SubId'."
            )
        logger.debug(f"Reading subscription ids from column '{column}' of {path}")
        values = []
        for row in reader:
            value = (row.get(column) or "").strip()
            if value:
                values.append(value)
        return values


def read_subscription_ids(input_file) -> List[str]:
    """Read raw (unvalidated) identifiers from a supported input file."""
    path = Path(input_file)
    if not path.is_file():
        raise InputFileNotFoundError(f"Input file {path} does not exist")

    extension = path.suffix.lower()
    try:
        if extension in LINE_DELIMITED_EXTENSIONS:
            return _read_lines(path)
        if extension in TABULAR_DELIMITERS:
            return _read_table(path, TABULAR_DELIMITERS[extension])
    except UnicodeDecodeError as e:
        raise UnsupportedFormatError(f"Input file {path} is not UTF-8 text: {e}") from e
    except csv.Error as e:
        raise UnsupportedFormatError(f"Input file {path} is not a valid {extension} file: {e}") from e

    supported = ", ".join(LINE_DELIMITED_EXTENSIONS + tuple(TABULAR_DELIMITERS))
    raise UnsupportedFormatError(
        f"Unsupported input file format '{path.suffix}'. Supported formats: {supported}"
    )


def validate_subscription_ids(raw_ids: Iterable[str]) -> List[str]:
    """Keep well-formed identifiers, first occurrence wins."""
    seen = set()
    valid = []
    for raw in raw_ids:
        value = (raw or "").strip()
        if not is_valid_subscription_id(value):
            logger.warning(f"Skipping '{value}': not a valid subscription id")
            continue
        key = value.lower()
        if key in seen:
            logger.debug(f"Skipping duplicate subscription id {value}")
            continue
        seen.add(key)
        valid.append(value)
    return valid


def _resolve_subscription(control_plane, subscription_id: str) -> Optional[TargetScope]:
    try:
        target = control_plane.get_subscription(subscription_id)
    except HttpResponseError as e:
        logger.warning(f"Skipping {subscription_id}: subscription is not accessible ({e.message})")
        return None
    if target is None:
        logger.warning(f"Skipping {subscription_id}: subscription not found")
    return target


def resolve_targets(control_plane, input_file=None) -> List[TargetScope]:
    if input_file is None:
        try:
            subscriptions = control_plane.list_accessible_subscriptions()
        except ClientAuthenticationError as e:
            raise NotAuthenticatedError(f"Could not list subscriptions: {e.message}") from e
        except HttpResponseError as e:
            raise NoValidInputError(f"Could not list accessible subscriptions: {e.message}") from e
        by_id = {s.subscription_id.lower(): s for s in subscriptions if s.subscription_id}
        wanted = validate_subscription_ids(s.subscription_id for s in subscriptions)
        targets = [by_id[sid.lower()] for sid in wanted]
        if not targets:
            raise NoValidInputError("No accessible subscriptions found for the signed-in identity")
        logger.info(f"Found {len(targets)} accessible subscription(s)")
        return targets

    raw_ids = read_subscription_ids(input_file)
    logger.info(f"Read {len(raw_ids)} identifier(s) from {input_file}")

    targets = []
    for subscription_id in validate_subscription_ids(raw_ids):
        target = _resolve_subscription(control_plane, subscription_id)
        if target is not None:
            targets.append(target)

    if not targets:
        raise NoValidInputError(f"No valid subscription ids found in {input_file}")
    logger.info(f"Resolved {len(targets)} subscription(s) from {input_file}")
    return targets
