"""JSON output formatter for the App Store Connect CLI."""

import json
import sys
from datetime import datetime, timezone


class JsonFormatter:
    """Outputs structured JSON for scripts and agents."""

    def __init__(self, stream=None, error_stream=None):
        self.stream = stream or sys.stdout
        self.error_stream = error_stream or sys.stderr

    def output_result(self, result, metadata=None):
        """Output successful result as structured JSON."""
        output = {
            'result': result,
            'metadata': {
                'timestamp': datetime.now(timezone.utc).isoformat(),
                **(metadata or {})
            }
        }
        print(json.dumps(output, indent=2, default=str), file=self.stream)

    def output_error(self, error):
        """Output error as structured JSON to stderr."""
        if hasattr(error, 'to_dict'):
            error_dict = error.to_dict()
        else:
            error_dict = {
                'error': type(error).__name__,
                'message': str(error)
            }
        error_dict['timestamp'] = datetime.now(timezone.utc).isoformat()
        print(json.dumps(error_dict, indent=2, default=str), file=self.error_stream)
