"""Human-readable output formatter for the App Store Connect CLI."""

import sys

MAX_CELL = 40


def _is_collection(result) -> bool:
    """True for the {<key>: [...], 'count': n, ...} shape of flattened collections."""
    if not isinstance(result, dict) or not isinstance(result.get('count'), int):
        return False
    lists = [v for v in result.values() if isinstance(v, list)]
    return len(lists) == 1 and len(lists[0]) == result['count']


class HumanFormatter:
    """Outputs readable text for direct terminal use."""

    def __init__(self, stream=None, error_stream=None):
        self.stream = stream or sys.stdout
        self.error_stream = error_stream or sys.stderr

    def output_result(self, result, metadata=None):
        """Output result in human-readable format."""
        if _is_collection(result):
            self._format_collection(result)
        elif isinstance(result, list):
            self._format_table(result)
        elif isinstance(result, dict):
            self._format_dict(result)
        else:
            self._print(result)

    def output_error(self, error):
        """Output error in human-readable format."""
        suggestion = getattr(error, 'suggestion', None)

        print(f"Error: {error}", file=self.error_stream)
        if suggestion:
            print(f"  Suggestion: {suggestion}", file=self.error_stream)

    def _print(self, text=''):
        print(text, file=self.stream)

    def _format_collection(self, result):
        """Format a flattened collection: the list as a table, then paging."""
        rows = next((v for v in result.values() if isinstance(v, list)), [])
        self._format_table(rows)
        if 'total' in result:
            self._print(f"(showing {result['count']} of {result['total']})")
        if result.get('next'):
            self._print(f"next: {result['next']}")

    def _format_dict(self, data, indent=0):
        """Format a dictionary."""
        prefix = "  " * indent
        for key, value in data.items():
            if isinstance(value, dict):
                self._print(f"{prefix}{key}:")
                self._format_dict(value, indent + 1)
            elif isinstance(value, list) and value and isinstance(value[0], dict):
                self._print(f"{prefix}{key}: ({len(value)} items)")
                for item in value:
                    self._format_dict(item, indent + 1)
                    self._print(f"{prefix}  ---")
            else:
                self._print(f"{prefix}{key}: {value}")

    def _format_table(self, items):
        """Format list of dicts as a simple table."""
        if not items:
            self._print("(no results)")
            return

        if not isinstance(items[0], dict):
            for item in items:
                self._print(f"  - {item}")
            return

        # Union of scalar keys, in first-seen order
        keys = []
        for item in items:
            for key, value in item.items():
                if key not in keys and not isinstance(value, (dict, list)):
                    keys.append(key)

        widths = {}
        for key in keys:
            values = [str(item.get(key, ''))[:MAX_CELL] for item in items]
            widths[key] = max(len(key), max(len(v) for v in values))

        header = "  ".join(key.ljust(widths[key]) for key in keys)
        self._print(header)
        self._print("-" * len(header))

        for item in items:
            row = "  ".join(
                str(item.get(key, ''))[:MAX_CELL].ljust(widths[key]) for key in keys
            )
            self._print(row.rstrip())

        self._print(f"\n({len(items)} total)")
