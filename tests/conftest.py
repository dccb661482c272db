"""Shared fixtures: an in-memory provider transport and a filter catalog."""

import pytest
from lxml import etree

from smartview.metadata import Filter

ESSBASE_FILTERS_XML = r"""
<res_EnumFilters>
<filterList>
  <filter name="Hierarchy" id="0" compose="" decompose="">
    <arg id="0" name="top" type="str" prompt="Member"/>
  </filter>
  <filter name="Children" id="1" compose="(%0.CHILDREN)" decompose="^\((.+)\.CHILDREN\)$">
    <arg id="0" name="top" type="str" prompt="Member"/>
  </filter>
  <filter name="Level" id="2" compose="DESCENDANTS(%0,%0.DIMENSION.LEVELS(%1))" decompose="^DESCENDANTS\((.+),.*\.LEVELS\((.+)\)\)$">
    <arg id="0" name="top" type="str" prompt="Member"/>
    <arg id="1" name="n" type="int" prompt="Level"/>
  </filter>
  <filter name="Descendants" id="3" compose="DESCENDANTS(%0)" decompose="^DESCENDANTS\( *(.+) *\)$">
    <arg id="0" name="top" type="str" prompt="Member"/>
  </filter>
  <filter name="Generation" id="4" compose="(%0.GENERATIONS(%1).MEMBERS)" decompose="^\((.+)\.GENERATIONS\((.+)\)\.MEMBERS\)$">
    <arg id="0" name="top" type="str" prompt="Member"/>
    <arg id="1" name="n" type="int" prompt="Generation"/>
  </filter>
  <filter name="UDA" id="5" compose="UDA(%0, %1)" decompose="^UDA\((.+), *(.+)\)$">
    <arg id="0" name="top" type="str" prompt="Top Dimension or Member"/>
    <arg id="1" name="uda" type="str" prompt="UDA"/>
  </filter>
  <filter name="Attribute" id="6" compose="ATTRIBUTE(%0)" decompose="^ATTRIBUTE\( *(.+) *\)$">
    <arg id="0" name="name" type="attribute" prompt="Attribute Member"/>
  </filter>
</filterList>
</res_EnumFilters>
"""


def parse_filters(xml=ESSBASE_FILTERS_XML):
    root = etree.fromstring(xml.strip())
    return [Filter.from_xml(element) for element in root.findall("filterList/filter")]


class FakeTransport:
    """Replays canned responses keyed by request method and records every
    request sent."""

    def __init__(self, responses=None):
        self.responses = {}
        for method, body in (responses or {}).items():
            self.add(method, body)
        self.requests = []

    def add(self, method, *bodies):
        self.responses.setdefault(method, []).extend(bodies)

    def post(self, url, payload):
        request = etree.fromstring(payload)
        self.requests.append(request)
        method = request.tag[len("req_"):]
        queue = self.responses.get(method)
        if not queue:
            raise AssertionError(f"Unexpected request {method}")
        # The last canned response for a method is reused
        body = queue.pop(0) if len(queue) > 1 else queue[0]
        return body.encode("utf-8")

    @property
    def methods(self):
        return [request.tag[len("req_"):] for request in self.requests]

    def last(self, method):
        for request in reversed(self.requests):
            if request.tag == f"req_{method}":
                return request
        raise AssertionError(f"No {method} request sent")


@pytest.fixture
def essbase_catalog():
    return parse_filters()


@pytest.fixture
def transport():
    return FakeTransport()
