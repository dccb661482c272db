"""
SmartView provider session.

`SmartView` drives the request/response choreography of the provider
protocol: connecting, opening an application cube, enumerating metadata and
retrieving grids. Everything that describes *what* is retrieved (dimension
lists, points of view, grids) is returned to the caller and passed back
explicitly; the session only remembers connection state.
"""

from __future__ import annotations

import time
from collections.abc import Iterator, Mapping, Sequence

from lxml import etree

from .errors import (
    AlreadyConnected,
    ArgumentError,
    NotAttached,
    NotConnected,
    ProtocolError,
    ProviderException,
    UnsupportedOperation,
)
from .compat import to_str
from .logging import get_logger
from .metadata import Filter, FilterSelection
from .provider import ProviderKind
from .query.axis import AxisSpec, process_axes
from .query.grid import Grid
from .query.parsers import default_filter, resolve_filter
from .query.preferences import Preferences
from .transport import HTTPTransport, Transport
from .wire import Request, find_text, parse_response, split_fields

__all__ = ["SmartView", "CLIENT_XML_VERSION"]

CLIENT_XML_VERSION = "3.1.0.0.0"
DEFAULT_LANGUAGE = "en_US"


class SmartView:
    """A connection to a SmartView provider."""

    def __init__(
        self,
        url: str,
        transport: Transport | None = None,
        preferences: Preferences | None = None,
        logger=None,
    ):
        """
        Create a SmartView client for the provider at `url`.

        Args:
            url: Provider servlet URL
            transport: Object posting requests; an `HTTPTransport` by default
            preferences: Retrieval preferences sent with grid requests
            logger: Logger to use instead of the SmartView default logger
        """
        if not url:
            raise ArgumentError("No provider URL given")

        self.url = url
        self.transport = transport or HTTPTransport()
        self.logger = logger or get_logger()
        self._preferences = preferences or Preferences()

        self.session_id: str | None = None
        self.provider: str | None = None
        self.provider_kind = ProviderKind.UNKNOWN
        self.user: str | None = None
        self.sso: str | None = None
        self._password: str | None = None

        self.server: str | None = None
        self.app: str | None = None
        self.cube: str | None = None

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    @preferences.setter
    def preferences(self, prefs: Preferences) -> None:
        if not isinstance(prefs, Preferences):
            raise ArgumentError(
                "Preference settings must be an instance of smartview.Preferences"
            )
        self._preferences = prefs

    def __enter__(self) -> SmartView:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close_app()

    # Connection
    # ------------------------------------------------------------------

    def connect(self, user_or_sso: str, password: str | None = None) -> str:
        """
        Connect to the provider and obtain a session id.

        With a single argument the value is used as an SSO token, with two
        arguments they are the user id and password.

        Returns:
            The provider description
        """
        if self.provider:
            raise AlreadyConnected("Cannot change provider once connected")

        request = Request("ConnectToProvider")
        request.add("ClientXMLVersion", CLIENT_XML_VERSION)
        if password is None:
            self.sso = user_or_sso
            self.logger.info(f"Connecting to {self.url} using SSO token")
            request.add("sso", self.sso)
        else:
            self.user = user_or_sso
            self._password = password
            self.logger.info(f"Connecting to {self.url} using userid/password")
            request.add("usr", self.user)
            request.add("pwd", password)
        request.add("lngs", DEFAULT_LANGUAGE, enc=0)

        response = self.invoke(request)
        self.session_id = find_text(response, "sID")
        self.provider = find_text(response, "provider")
        self.provider_kind = ProviderKind.from_description(self.provider)
        self.logger.info(
            f"Connected to {self.provider} ({self.provider_kind.value} provider)"
        )
        return self.provider

    def open_app(self, server: str, app: str, cube: str) -> dict[str, str]:
        """
        Open an application cube.

        Returns:
            The default point of view of the cube
        """
        if not (self.session_id and self.provider):
            raise NotConnected("No provider connection established")

        self.logger.info(f"Opening cube {app}.{cube} on {server}")
        request = Request("OpenApplication")
        request.add("sID", self.session_id)
        if self.sso:
            request.add("sso", self.sso)
        else:
            request.add("usr", self.user)
            request.add("pwd", self._password)
        request.add("srv", server)
        request.add("app", app)
        self.invoke(request)

        if not self.sso:
            request = Request("GetSSOToken")
            request.add("sID", self.session_id)
            self.sso = find_text(self.invoke(request), "sso")
            self._password = None

        request = Request("OpenCube")
        request.add("sID", self.session_id)
        request.add("srv", server)
        request.add("app", app)
        request.add("cube", cube)
        self.invoke(request)

        self.server = server
        self.app = app
        self.cube = cube

        return self.default_pov()

    def close_app(self) -> None:
        """Close the current application cube, if any."""
        if not (self.session_id and self.app):
            return

        self.logger.info(f"Disconnecting from {self.app}.{self.cube}")
        request = Request("Logout")
        request.add("sID", self.session_id)
        try:
            self.invoke(request)
        finally:
            self.server = None
            self.app = None
            self.cube = None

    # Metadata
    # ------------------------------------------------------------------

    def get_dimensions(self) -> list[str]:
        """Return the cube dimensions, indexed by provider ordinal."""
        self._check_attached()

        self.logger.info("Retrieving list of dimensions")
        request = Request("EnumDims")
        request.add("sID", self.session_id)
        request.add("alsTbl", self.preferences.alias_table)
        response = self.invoke(request)

        dims = {}
        for dim in response.findall("dimList/dim"):
            try:
                dims[int(dim.get("id"))] = dim.get("name")
            except (TypeError, ValueError) as e:
                raise ProtocolError(f"Invalid dimension id {dim.get('id')!r}") from e

        if sorted(dims) != list(range(len(dims))):
            raise ProtocolError(f"Dimension ids are not contiguous: {sorted(dims)}")
        return [dims[i] for i in range(len(dims))]

    def get_filters(self, dimension: str) -> list[Filter]:
        """Return the member filters available for `dimension`."""
        self._check_attached()

        self.logger.info(
            f"Retrieving list of available member filters for {dimension}"
        )
        request = Request("EnumFilters")
        request.add("sID", self.session_id)
        request.add("dim", dimension)
        response = self.invoke(request)
        return [Filter.from_xml(element) for element in response.findall("filterList/filter")]

    def process_filter(
        self, dimension: str, filter_spec: str | None = None
    ) -> FilterSelection:
        """Resolve a filter expression for `dimension` using the grammar of
        the connected provider. The filter catalog is only requested from
        the provider when the grammar alone cannot resolve the expression."""

        def catalog() -> Iterator[Filter]:
            yield from self.get_filters(dimension)

        return resolve_filter(self.provider_kind, dimension, filter_spec, catalog())

    def get_members(
        self,
        dimension: str,
        filter_spec: str | None = None,
        all_generations: bool = True,
    ) -> list[str]:
        """Return the members of `dimension`, optionally restricted by a
        filter expression."""
        self._check_attached()

        selection = self.process_filter(dimension, filter_spec)
        self.logger.info(f"Retrieving list of members for {dimension}")
        request = Request("EnumMembers")
        request.add("sID", self.session_id)
        request.add("dim", dimension)
        member_filter = request.add("memberFilter")
        self._add_filter(member_filter, selection)
        request.add("getAtts", 0)
        request.add("alsTbl", self.preferences.alias_table)
        request.add("allGenerations", all_generations)
        response = self.invoke(request)
        return split_fields(find_text(response, "mbrs"))

    def find_member(self, dimension: str, pattern: str) -> list[list[str]]:
        """
        Search `dimension` for members matching `pattern`.

        Returns:
            One list per match, holding the path of member names leading to
            the matching member
        """
        self._check_attached()

        self.logger.info(f"Finding members of {dimension} matching '{pattern}'")
        request = Request("FindMember")
        request.add("sID", self.session_id)
        request.add("dim", dimension)
        request.add("mbr", pattern)
        self._add_filter(request.root, default_filter(self.provider_kind, dimension))
        request.add("alsTbl", self.preferences.alias_table)
        response = self.invoke(request)
        return [
            split_fields(find_text(path, "mbrs"))
            for path in response.findall("pathList/path")
        ]

    def default_pov(self) -> dict[str, str]:
        """Return the default point of view of the open cube."""
        self._check_attached()

        self.logger.info("Retrieving default POV")
        request = Request("GetDefaultPOV")
        request.add("sID", self.session_id)
        request.add("getAtts", 0)
        request.add("alsTbl", self.preferences.alias_table)
        response = self.invoke(request)

        dims = split_fields(find_text(response, "dims"))
        members = split_fields(find_text(response, "mbrs"))
        if len(dims) != len(members):
            raise ProtocolError(
                f"Default POV lists {len(dims)} dimensions but {len(members)} members"
            )
        return dict(zip(dims, members))

    # Grids
    # ------------------------------------------------------------------

    def default_grid(self, pov: Mapping[str, str] | None = None) -> Grid:
        """Retrieve the provider's default grid for `pov` (the cube's
        default POV when omitted)."""
        self._check_attached()
        pov = dict(pov) if pov is not None else self.default_pov()

        self.logger.info("Retrieving default grid")
        request = Request("GetDefaultGrid")
        request.add("sID", self.session_id)
        self.preferences.to_xml(request.root, self.provider_kind)
        self._add_background_pov(request, pov)
        return Grid.from_xml(self.invoke(request))

    def refresh(self, grid: Grid) -> Grid:
        """Retrieve the data for `grid` and return the populated grid."""
        self._check_attached()

        self.logger.info("Refreshing grid")
        request = Request("Refresh")
        request.add("sID", self.session_id)
        self.preferences.to_xml(request.root, self.provider_kind)
        grid.to_xml(request.root)
        return Grid.from_xml(self.invoke(request))

    def free_form_grid(
        self,
        rows: AxisSpec,
        cols: AxisSpec = None,
        pov: Mapping[str, str] | None = None,
        dimensions: Sequence[str] | None = None,
    ) -> Grid:
        """
        Retrieve a grid for the given rows and columns.

        Args:
            rows: Row axis specification, or a two-entry mapping of rows and
                columns when `cols` is omitted
            cols: Column axis specification
            pov: Point of view members overriding the cube's default POV
            dimensions: Cube dimensions; requested from the provider when
                omitted

        Returns:
            The populated grid
        """
        self._check_attached()
        # Malformed axes fail before any request is sent
        process_axes(rows, cols)

        if dimensions is None:
            dimensions = self.get_dimensions()
        merged_pov = self.default_pov()
        merged_pov.update(pov or {})

        grid = Grid.define(dimensions, merged_pov, rows, cols)

        self.logger.info("Retrieving free-form grid")
        request = Request("ProcessFreeFormGrid")
        request.add("sID", self.session_id)
        self.preferences.to_xml(request.root, self.provider_kind)
        self._add_background_pov(request, merged_pov)
        grid.to_xml(request.root, include_dims=False)
        grid.dims_to_xml(request.root)
        layout = Grid.from_xml(self.invoke(request))

        # The free-form response carries the layout only, not the data
        return self.refresh(layout)

    def mdx_query(self, mdx: str) -> Grid:
        """Execute an MDX query and return the resulting grid. Only
        available on Essbase providers."""
        self._check_attached()
        if self.provider_kind != ProviderKind.ESSBASE:
            raise UnsupportedOperation(
                f"MDX queries are not supported by {self.provider or 'this provider'}"
            )

        self.logger.info(f"Executing MDX query: {mdx}")
        request = Request("ExecuteQuery")
        request.add("sID", self.session_id)
        self.preferences.to_xml(request.root, self.provider_kind)
        request.add("mdx", mdx)
        return Grid.from_xml(self.invoke(request))

    # Plumbing
    # ------------------------------------------------------------------

    def invoke(self, request: Request) -> etree._Element:
        """
        Send `request` to the provider and return its `res_<Method>`
        element.

        Raises:
            ProviderException: If the provider answered with an exception
            ProtocolError: If the response has any other unexpected shape
            TransportError: If the request could not be delivered
        """
        payload = request.to_bytes()
        started = time.perf_counter()
        body = self.transport.post(self.url, payload)
        elapsed = time.perf_counter() - started
        self.logger.info(
            f"SmartView request {request.method} completed in {elapsed:.1f}s"
        )

        document = parse_response(body)
        if document.tag == request.response_tag:
            return document
        result = document.find(f".//{request.response_tag}")
        if result is not None:
            return result

        self.logger.error(f"Error invoking SmartView method {request.method}")
        self.logger.debug(f"Request was:\n{request.to_string()}")
        self.logger.debug(f"Response was:\n{to_str(body)}")

        if document.tag == "exception":
            exception = document
        else:
            exception = document.find(".//exception")
        if exception is not None:
            error = ProviderException.from_xml(exception)
            self.logger.error(f"An exception occurred in {request.method}: {error}")
            raise error

        raise ProtocolError(
            f"Unexpected response from SmartView provider to {request.method}: "
            f"'{document.tag}' element"
        )

    def _check_connected(self) -> None:
        if not (self.session_id and self.sso and self.provider):
            raise NotConnected("No provider connection established")

    def _check_attached(self) -> None:
        self._check_connected()
        if not (self.app and self.cube):
            raise NotAttached("No application cube is open")

    @staticmethod
    def _add_filter(parent: etree._Element, selection: FilterSelection) -> None:
        filter_element = etree.SubElement(parent, "filter", name=selection.name)
        for index, argument in enumerate(selection.arguments):
            arg = etree.SubElement(filter_element, "arg", id=str(index))
            arg.text = argument

    @staticmethod
    def _add_background_pov(request: Request, pov: Mapping[str, str]) -> None:
        background = request.add("backgroundpov")
        for dimension, member in pov.items():
            etree.SubElement(background, "dim", name=dimension, pov=member)
