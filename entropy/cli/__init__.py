"""Command-line helpers: configuration loading and output formatting."""