"""Unit tests for the code system registry."""

from dsf_lint.codes import BPMN_TASK_PROFILE, PROCESS_AUTHORIZATION, READ_ACCESS_TAG, CodeSystemRegistry
from dsf_lint.query import parse_xml


class TestCodeSystemRegistry:
    """Test code membership lookups."""

    def test_default_codes(self):
        codes = CodeSystemRegistry()
        assert codes.is_known(READ_ACCESS_TAG, "ALL")
        assert codes.is_unknown(PROCESS_AUTHORIZATION, "EVERYONE")

    def test_unregistered_system_is_never_unknown(self):
        codes = CodeSystemRegistry()
        assert not codes.contains_system("http://loinc.org")
        assert not codes.is_unknown("http://loinc.org", "1234-5")

    def test_open_system_accepts_any_code(self):
        codes = CodeSystemRegistry()
        assert codes.contains_system(BPMN_TASK_PROFILE)
        assert codes.is_known(BPMN_TASK_PROFILE, "anything")

    def test_add_code_system_document(self):
        codes = CodeSystemRegistry(seed={})
        document = parse_xml("""
            <CodeSystem xmlns="http://hl7.org/fhir">
              <url value="http://example.org/fhir/CodeSystem/ping"/>
              <concept><code value="ping-status"/></concept>
              <concept><code value="pong-status"/></concept>
            </CodeSystem>
        """)

        assert codes.add_code_system(document) == 2
        assert codes.is_known("http://example.org/fhir/CodeSystem/ping", "pong-status")
        assert codes.systems_containing("ping-status") == {"http://example.org/fhir/CodeSystem/ping"}

    def test_code_system_without_url_is_ignored(self):
        codes = CodeSystemRegistry(seed={})
        document = parse_xml('<CodeSystem xmlns="http://hl7.org/fhir"><concept><code value="x"/></concept></CodeSystem>')
        assert codes.add_code_system(document) == 0
