"""
peggylsp Language Server.

Registers LSP capabilities and wires the grammar analysis cache, the debounced
validation pipeline and the query handlers.
"""
from __future__ import annotations

import logging

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from peggylsp import __version__
from peggylsp.cache import SlotCache
from peggylsp.debounce import Debouncer
from peggylsp.document import GrammarDocument
from peggylsp.handlers import (
    get_completions,
    get_definition,
    get_document_symbols,
    get_references,
    get_rename_edits,
)
from peggylsp.settings import SECTION, PeggySettings, apply_log_level, section_from
from peggylsp.validation import Validator

logger = logging.getLogger(__name__)


class PeggyLanguageServer(LanguageServer):
    """Language server owning the per-document state of one client session."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.settings = PeggySettings()
        # Per-URI document store (populated on open/change).
        self.documents: dict[str, GrammarDocument] = {}
        # Per-URI analysis result: Grammar, INVALID, or empty while compiling.
        self.analysis: SlotCache = SlotCache()
        self.validator = Validator(
            self.analysis,
            publish=self.publish_grammar_diagnostics,
            settings=self.settings,
            console=self.log_to_console,
        )
        self.validate_debounced = Debouncer(self._validate, self.settings.debounce_seconds)

    async def _validate(self, doc: GrammarDocument):
        return self.validator.validate(doc.uri, doc.source)

    def apply_settings(self, settings: PeggySettings) -> None:
        self.settings = settings
        self.validator.settings = settings
        self.validate_debounced.wait = settings.debounce_seconds
        apply_log_level(settings.log_level)
        logger.debug('apply_settings: %s', settings)

    def publish_grammar_diagnostics(self, uri: str, diagnostics: list[lsp.Diagnostic]) -> None:
        self.text_document_publish_diagnostics(
            lsp.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )

    def log_to_console(self, message: str) -> None:
        try:
            self.window_log_message(lsp.LogMessageParams(type=lsp.MessageType.Log, message=message))
        except Exception:
            # Protocol not connected (e.g. during unit tests)
            logger.debug('log_to_console: could not send %r', message, exc_info=True)

    async def pull_settings(self) -> PeggySettings:
        """Ask the client for the ``peggyLanguageServer`` section.

        A client without that section answers ``null``; the current settings
        (initialization options, command line) are then kept as they are.
        """
        result = await self.workspace_configuration_async(
            lsp.ConfigurationParams(items=[lsp.ConfigurationItem(section=SECTION)])
        )
        raw = result[0] if result else None
        if raw is None:
            return self.settings
        return PeggySettings().updated(raw)


server = PeggyLanguageServer(
    'peggy-language-server', __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

@server.feature(lsp.INITIALIZE)
def on_initialize(params: lsp.InitializeParams):
    opts = getattr(params, 'initialization_options', None)
    if opts:
        server.apply_settings(server.settings.updated(opts))


@server.feature(lsp.INITIALIZED)
async def on_initialized(params: lsp.InitializedParams):
    try:
        settings = await server.pull_settings()
    except Exception:
        logger.warning('on_initialized: could not read client configuration', exc_info=True)
        return
    server.apply_settings(settings)


@server.feature(lsp.WORKSPACE_DID_CHANGE_CONFIGURATION)
async def did_change_configuration(params: lsp.DidChangeConfigurationParams):
    """Re-read every option, then revalidate all open documents."""
    raw = section_from(getattr(params, 'settings', None))
    if raw is not None:
        settings = PeggySettings().updated(raw)
    else:
        try:
            settings = await server.pull_settings()
        except Exception:
            logger.warning('did_change_configuration: could not read client configuration',
                           exc_info=True)
            return
    server.apply_settings(settings)

    for doc in list(server.documents.values()):
        server.validate_debounced(doc)


# ---------------------------------------------------------------------------
# Text document synchronisation
# ---------------------------------------------------------------------------

@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams):
    td = params.text_document
    doc = GrammarDocument(uri=td.uri, source=td.text, version=td.version)
    server.documents[td.uri] = doc
    # Validate immediately on open (not debounced) so the first queries
    # always find a filled slot.
    server.validate_debounced.cancel(td.uri)
    server.validator.validate(doc.uri, doc.source)


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams):
    uri = params.text_document.uri
    doc = GrammarDocument(
        uri=uri,
        source=params.content_changes[-1].text,
        version=params.text_document.version,
    )
    server.documents[uri] = doc
    # Debounce: wait for the user to pause typing before recompiling
    server.validate_debounced(doc)


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams):
    uri = params.text_document.uri
    server.validate_debounced.cancel(uri)
    server.documents.pop(uri, None)
    server.analysis.discard(uri)
    server.publish_grammar_diagnostics(uri, [])


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

@server.feature(lsp.TEXT_DOCUMENT_COMPLETION, lsp.CompletionOptions())
async def completion(params: lsp.CompletionParams) -> list[lsp.CompletionItem] | None:
    uri = params.text_document.uri
    if uri not in server.documents:
        return None
    analysis = await server.analysis.wait_for(uri)
    doc = server.documents.get(uri)
    if doc is None:
        return None
    return get_completions(analysis, doc, params.position)


@server.feature(lsp.TEXT_DOCUMENT_DEFINITION)
async def definition(params: lsp.DefinitionParams) -> list[lsp.LocationLink] | None:
    uri = params.text_document.uri
    if uri not in server.documents:
        return None
    analysis = await server.analysis.wait_for(uri)
    doc = server.documents.get(uri)
    if doc is None:
        return None
    return get_definition(analysis, doc, params.position)


@server.feature(lsp.TEXT_DOCUMENT_REFERENCES)
def references(params: lsp.ReferenceParams) -> list[lsp.Location] | None:
    # Best effort: use whatever analysis is current, even a stale one.
    uri = params.text_document.uri
    doc = server.documents.get(uri)
    if doc is None:
        return None
    return get_references(server.analysis.get(uri), doc, params.position)


@server.feature(lsp.TEXT_DOCUMENT_RENAME)
def rename(params: lsp.RenameParams) -> lsp.WorkspaceEdit | None:
    uri = params.text_document.uri
    doc = server.documents.get(uri)
    if doc is None:
        return None
    return get_rename_edits(server.analysis.get(uri), doc, params.position, params.new_name)


@server.feature(
    lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL,
    lsp.DocumentSymbolOptions(label='Peggy Rules'),
)
async def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol] | None:
    uri = params.text_document.uri
    if uri not in server.documents:
        return None
    analysis = await server.analysis.wait_for(uri)
    return get_document_symbols(analysis, server.documents.get(uri))
