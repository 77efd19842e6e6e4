# --- START OF FILE parsers/zfs_get.py ---
"""
Parser for `zfs get all -H -p` output.
Groups the flat name/property/value/source rows into one Dataset per name.
"""

import re
from typing import Dict, List, Optional, Tuple

import constants
from models import Dataset, Property, PropertySource
from zfs_errors import ZfsParsingError

_WHITESPACE = re.compile(r'\s+')


class ZfsGetParser:
    """Parses output from `zfs get`."""

    @classmethod
    def get_command_args(cls, root: Optional[str] = None, types: Optional[str] = None) -> List[str]:
        """Returns the zfs arguments producing the dump aggregate() expects."""
        args = ['get', 'all', '-H', '-p']
        if types:
            args += ['-t', types]
        if root:
            args += ['-r', root]
        return args

    @classmethod
    def aggregate(cls, raw_output: str, command_parts: Optional[List[str]] = None) -> List[Dataset]:
        """
        Turns a property dump into Dataset records.

        Args:
            raw_output: Full text of the dump, one property per line.
            command_parts: Command that produced the text, kept on errors.

        Returns:
            One Dataset per distinct name, in first-seen order. Within a
            dataset the last row for a property name wins.

        Raises:
            ZfsParsingError: on the first malformed line. Nothing is returned
            for the rows that did parse.
        """
        datasets: List[Dataset] = []
        current_name: Optional[str] = None
        current_props: Dict[str, Property] = {}

        for line in raw_output.split('\n'):
            line = line.rstrip('\r')
            if not line:
                continue
            name, prop = cls.parse_line(line, command_parts)
            if name != current_name:
                if current_name is not None:
                    datasets.append(Dataset(name=current_name, properties=current_props))
                current_name = name
                current_props = {}
            current_props[prop.name] = prop

        if current_name is not None:
            datasets.append(Dataset(name=current_name, properties=current_props))
        return datasets

    @classmethod
    def parse_line(cls, line: str, command_parts: Optional[List[str]] = None) -> Tuple[str, Property]:
        """Parses one row into (dataset name, Property)."""
        # -H output is tab separated and the source column may hold spaces
        fields = line.split('\t') if '\t' in line else _WHITESPACE.split(line.strip())
        if len(fields) != len(constants.ZFS_GET_FIELDS):
            raise ZfsParsingError(
                f"Expected {len(constants.ZFS_GET_FIELDS)} fields, got {len(fields)}.",
                raw_line=line, command_parts=command_parts)

        name, prop_name, value, raw_source = fields
        try:
            source, inherited_from = cls.parse_source(raw_source)
        except ValueError as e:
            raise ZfsParsingError(f"Unknown property source: {e}", raw_line=line, command_parts=command_parts) from e
        return name, Property(name=prop_name, value=value, source=source, inherited_from=inherited_from)

    @staticmethod
    def parse_source(raw_source: str) -> Tuple[PropertySource, Optional[str]]:
        """Maps the source column to a PropertySource, keeping the parent of inherited values."""
        if raw_source.startswith(constants.INHERITED_SOURCE_PREFIX):
            return PropertySource.INHERITED, raw_source[len(constants.INHERITED_SOURCE_PREFIX):]
        if raw_source in ('inherited', 'inherit'):
            return PropertySource.INHERITED, None
        return PropertySource(raw_source), None
