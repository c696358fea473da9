"""sdkraft -- Generate typed Python SDKs from OpenAPI 3.0/3.1 specs.

This package converts an OpenAPI specification into an importable Python
package: pydantic models for every schema definition, one httpx function
per operation, a ``Client`` that bundles them and, optionally, a pytest
suite exercising each operation against a mock transport.

Typical workflow::

    sdkraft generate openapi.yaml -o ./petstore -p petstore
    sdkraft validate ./petstore/petstore

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for configuration, the parsed document and
        generation records.
    config: Configuration file discovery and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    logging_config: ``generation.log`` and console log handlers.
    fs: Directory creation and atomic file writes.
"""

__version__ = "0.1.0"
