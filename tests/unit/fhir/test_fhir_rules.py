"""Unit tests for the FHIR resource rule sets."""

import pytest

from dsf_lint.codes import BPMN_MESSAGE
from dsf_lint.fhir import FhirRouter
from dsf_lint.validation import Severity

QUESTIONNAIRE_PROFILE = "http://dsf.dev/fhir/StructureDefinition/questionnaire|1.5.0"
PARENT_ROLE = "http://dsf.dev/fhir/StructureDefinition/extension-read-access-parent-organization-role"


def of_kind(items, kind):
    return [i for i in items if i.kind == kind]


def severities(items, kind):
    return [i.severity for i in of_kind(items, kind)]


def problems(items):
    return [(i.kind, i.message) for i in items if i.severity in (Severity.ERROR, Severity.WARN)]


@pytest.fixture
def route(ping_plugin, xml):
    """Validate one resource document against the ping plugin."""
    router = FhirRouter.with_default_rules()
    context = ping_plugin.context()

    def run(document: str, source: str = "fhir/test.xml"):
        return router.route(xml(document), context, source)

    return run


class TestTaskRule:
    """Test example Task resources."""

    def test_valid_draft_task(self, route, samples):
        items = route(samples.ping_task())

        assert problems(items) == []
        assert {i.reference for i in items} == {samples.process_url}
        assert severities(items, "task_instance_count_within_bounds") == [Severity.SUCCESS]

    def test_draft_task_with_business_key(self, route, samples):
        inputs = samples.task_input("message-name") + samples.task_input("business-key", "b-1")
        items = route(samples.ping_task("draft", inputs))
        assert severities(items, "task_business_key_exists") == [Severity.ERROR]

    def test_in_progress_task_needs_business_key(self, route, samples):
        items = route(samples.ping_task("in-progress"))
        assert severities(items, "task_status_not_draft") == [Severity.ERROR]
        assert severities(items, "task_business_key_missing") == [Severity.ERROR]

    def test_business_key_check_skipped_for_other_status(self, route, samples):
        items = route(samples.ping_task("requested"))
        assert severities(items, "task_business_key_skipped") == [Severity.INFO]

    def test_correlation_key_not_allowed_by_profile(self, route, samples):
        inputs = samples.task_input("message-name") + samples.task_input("correlation-key", "c-1")
        items = route(samples.ping_task("draft", inputs))

        assert severities(items, "task_correlation_key_exists") == [Severity.ERROR]
        [count] = of_kind(items, "task_slice_count_above_max")
        assert "correlation-key" in count.message

    def test_duplicate_input_slices(self, route, samples):
        inputs = samples.task_input("message-name") * 2
        items = route(samples.ping_task("draft", inputs))

        [duplicate] = of_kind(items, "task_input_duplicate_slice")
        assert duplicate.severity == Severity.ERROR
        assert duplicate.message == f"Duplicate slice '{BPMN_MESSAGE}#message-name' (2x)"
        assert severities(items, "task_slice_count_above_max") == [Severity.ERROR]

    def test_too_many_inputs(self, route, samples):
        inputs = (samples.task_input("message-name") + samples.task_input("business-key", "b-1")
                  + samples.task_input("correlation-key", "c-1"))
        items = route(samples.ping_task("in-progress", inputs))
        assert severities(items, "task_instance_count_above_max") == [Severity.ERROR]

    def test_task_without_inputs(self, route, samples):
        items = route(samples.ping_task("draft", ""))
        assert severities(items, "task_input_missing") == [Severity.ERROR]
        assert of_kind(items, "task_input_message_name_missing") == []

    def test_input_without_message_name(self, route, samples):
        items = route(samples.ping_task("draft", samples.task_input("business-key", "b-1")))
        assert severities(items, "task_input_message_name_missing") == [Severity.ERROR]
        assert severities(items, "task_slice_count_below_min") == [Severity.ERROR]

    def test_unknown_profile_skips_instance_counts(self, route, samples):
        document = samples.ping_task().replace(samples.task_profile, "http://dsf.dev/fhir/StructureDefinition/other")
        items = route(document)

        assert severities(items, "task_profile_not_loaded") == [Severity.INFO]
        assert of_kind(items, "task_instance_count_within_bounds") == []

    def test_placeholders(self, route, samples):
        document = (samples.ping_task()
                    .replace("#{organization}", "Test_DIC")
                    .replace(f'<instantiatesCanonical value="{samples.process_url}|#{{version}}"/>',
                             f'<instantiatesCanonical value="{samples.process_url}|1.0"/>'))
        items = route(document)

        assert severities(items, "task_requester_no_placeholder") == [Severity.ERROR]
        assert severities(items, "task_recipient_no_placeholder") == [Severity.ERROR]
        assert severities(items, "task_instantiates_canonical_placeholder") == [Severity.ERROR]
        assert severities(items, "task_instantiates_canonical_unknown") == [Severity.SUCCESS]

    def test_unknown_code(self, route, samples):
        inputs = samples.task_input("message-name") + samples.task_input("ping-count", "1")
        items = route(samples.ping_task("draft", inputs))

        [unknown] = of_kind(items, "task_unknown_code")
        assert unknown.severity == Severity.ERROR
        assert "ping-count" in unknown.message


class TestStructureDefinitionRule:
    """Test profiles shipped with a plugin."""

    def test_valid_profile(self, route, samples):
        items = route(samples.ping_task_profile)
        assert problems(items) == []
        assert severities(items, "slice_max_within_base_max") == [Severity.SUCCESS]

    def test_metadata(self, route, samples):
        document = (samples.ping_task_profile
                    .replace('<version value="#{version}"/>', '<version value="1.0"/>')
                    .replace('<status value="unknown"/>', '<status value="active"/>')
                    .replace("</differential>", "</differential><snapshot/>"))
        items = route(document)

        assert severities(items, "version_no_placeholder") == [Severity.ERROR]
        assert severities(items, "status_not_unknown") == [Severity.ERROR]
        assert severities(items, "snapshot_present") == [Severity.WARN]

    def test_duplicate_element_id(self, route, samples):
        document = samples.fhir("StructureDefinition", f"""
          <meta>{samples.read_access_tag()}</meta>
          <url value="http://dsf.dev/fhir/StructureDefinition/task-x"/>
          <differential>
            <element id="Task.note"><path value="Task.note"/></element>
            <element id="Task.note"><path value="Task.note"/></element>
          </differential>""")
        items = route(document)

        [duplicate] = of_kind(items, "element_id_duplicate")
        assert duplicate.element_id == "Task.note"
        assert of_kind(items, "element_id_missing") == []

    def test_slice_cardinality(self, route, samples):
        document = samples.fhir("StructureDefinition", f"""
          <meta>{samples.read_access_tag()}</meta>
          <url value="http://dsf.dev/fhir/StructureDefinition/task-x"/>
          <differential>
            <element id="Task.input"><path value="Task.input"/><min value="1"/><max value="1"/></element>
            <element id="Task.input:a"><path value="Task.input"/><sliceName value="a"/>
              <min value="1"/><max value="2"/></element>
            <element id="Task.input:b"><path value="Task.input"/><sliceName value="b"/>
              <min value="1"/><max value="1"/></element>
          </differential>""")
        items = route(document)

        assert severities(items, "slice_min_sum_above_base_min") == [Severity.WARN]
        assert severities(items, "slice_max_above_base_max") == [Severity.ERROR]
        assert severities(items, "slice_min_sum_above_base_max") == [Severity.ERROR]
        assert {i.element_id for i in of_kind(items, "slice_max_above_base_max")} == {"Task.input"}

    def test_unparsable_cardinality(self, route, samples):
        document = samples.ping_task_profile.replace('<max value="2"/>', '<max value="two"/>')
        items = route(document)
        assert severities(items, "cardinality_unparsable") == [Severity.ERROR]

    def test_unknown_read_access_code(self, route, samples):
        document = samples.ping_task_profile.replace(samples.read_access_tag(), samples.read_access_tag("NOBODY"))
        items = route(document)
        assert severities(items, "read_access_tag_missing") == [Severity.ERROR]


class TestActivityDefinitionRule:
    """Test process ActivityDefinitions."""

    def test_valid_activity_definition(self, route, samples):
        assert problems(route(samples.ping_activity_definition)) == []

    def test_url_pattern(self, route, samples):
        document = samples.ping_activity_definition.replace(
            f'<url value="{samples.process_url}"/>', '<url value="http://dsf.dev/Process/ping"/>')
        items = route(document)
        assert severities(items, "activity_definition_url_pattern") == [Severity.ERROR]

    def test_versioned_profile(self, route, samples):
        document = samples.ping_activity_definition.replace(
            "StructureDefinition/activity-definition\"", "StructureDefinition/activity-definition|1.0.0\"")
        items = route(document)
        assert severities(items, "activity_definition_profile_version") == [Severity.ERROR]

    def test_unknown_authorization_code(self, route, samples):
        document = samples.ping_activity_definition.replace("LOCAL_ALL", "EVERYONE", 1)
        items = route(document)
        assert severities(items, "authorization_requester_invalid") == [Severity.ERROR]
        assert severities(items, "authorization_recipient_invalid") == [Severity.SUCCESS]

    def test_missing_process_authorization(self, route, samples):
        document = samples.fhir("ActivityDefinition", f"""
          <meta>{samples.read_access_tag()}</meta>
          <url value="{samples.process_url}"/>
          <status value="draft"/>""")
        items = route(document)

        assert severities(items, "process_authorization_missing") == [Severity.ERROR]
        assert severities(items, "status_not_unknown") == [Severity.ERROR]
        assert severities(items, "kind_missing") == [Severity.ERROR]
        assert severities(items, "activity_definition_profile") == [Severity.WARN]


def code_system(concepts: str, date: str = "#{date}") -> str:
    return f"""
      <meta><tag><system value="http://dsf.dev/fhir/CodeSystem/read-access-tag"/><code value="ALL"/></tag></meta>
      <url value="http://example.org/fhir/CodeSystem/ping-status"/>
      <name value="PingStatus"/>
      <title value="Ping status"/>
      <publisher value="example.org"/>
      <status value="unknown"/>
      <date value="{date}"/>
      <caseSensitive value="true"/>
      <content value="complete"/>
      {concepts}"""


class TestCodeSystemRule:
    """Test CodeSystem resources."""

    def test_valid_code_system(self, route, samples):
        document = samples.fhir("CodeSystem", code_system(
            '<concept><code value="ok"/><display value="OK"/></concept>'))
        items = route(document)

        assert problems(items) == []
        assert severities(items, "version_no_placeholder") == [Severity.SUCCESS]

    def test_concepts(self, route, samples):
        document = samples.fhir("CodeSystem", code_system(
            '<concept><code value="ok"/><display value="OK"/></concept>'
            '<concept><code value="ok"/><display value="again"/></concept>'
            '<concept><code value="silent"/></concept>', date="2026-01-01"))
        items = route(document)

        assert severities(items, "concept_code_duplicate") == [Severity.ERROR]
        assert severities(items, "concept_display_missing") == [Severity.ERROR]
        assert severities(items, "date_no_placeholder") == [Severity.WARN]

    def test_without_concepts(self, route, samples):
        items = route(samples.fhir("CodeSystem", code_system("")))
        assert severities(items, "concept_missing") == [Severity.ERROR]


def value_set(includes: str, tags: str = "") -> str:
    return f"""
      <meta>
        <tag><system value="http://dsf.dev/fhir/CodeSystem/read-access-tag"/><code value="ALL"/></tag>
        {tags}
      </meta>
      <url value="http://example.org/fhir/ValueSet/ping"/>
      <version value="#{{version}}"/>
      <name value="Ping"/>
      <title value="Ping"/>
      <publisher value="example.org"/>
      <description value="Ping messages"/>
      <date value="#{{date}}"/>
      <compose>{includes}</compose>"""


class TestValueSetRule:
    """Test ValueSet resources."""

    def test_valid_value_set(self, route, samples):
        document = samples.fhir("ValueSet", value_set(f"""
          <include>
            <system value="{BPMN_MESSAGE}"/><version value="#{{version}}"/>
            <concept><code value="message-name"/></concept>
          </include>"""))
        assert problems(route(document)) == []

    def test_include_codes(self, route, samples):
        document = samples.fhir("ValueSet", value_set(f"""
          <include>
            <system value="{BPMN_MESSAGE}"/><version value="1.0"/>
            <concept><code value="message-name"/></concept>
            <concept><code value="message-name"/></concept>
            <concept><code value="nonsense"/></concept>
          </include>
          <include>
            <system value="http://example.org/fhir/CodeSystem/other"/><version value="#{{version}}"/>
            <concept><code value="business-key"/></concept>
          </include>"""))
        items = route(document)

        assert severities(items, "include_version_no_placeholder") == [Severity.WARN, Severity.SUCCESS]
        assert severities(items, "include_concept_code_duplicate") == [Severity.WARN]
        assert severities(items, "include_concept_code_unknown") == [
            Severity.SUCCESS, Severity.SUCCESS, Severity.ERROR,
        ]
        assert severities(items, "include_concept_wrong_system") == [Severity.ERROR]

    def test_parent_organization_role(self, route, samples):
        tags = f"""
          <tag>
            <extension url="{PARENT_ROLE}">
              <extension url="organization-role"><valueCoding><code value="PIRATE"/></valueCoding></extension>
            </extension>
            <system value="http://dsf.dev/fhir/CodeSystem/read-access-tag"/><code value="ROLE"/>
          </tag>"""
        document = samples.fhir("ValueSet", value_set("", tags))
        items = route(document)

        assert severities(items, "organization_role_code_invalid") == [Severity.ERROR]
        assert severities(items, "compose_include_missing") == [Severity.ERROR]


def questionnaire(items: str) -> str:
    return f"""
      <meta>
        <profile value="{QUESTIONNAIRE_PROFILE}"/>
        <tag><system value="http://dsf.dev/fhir/CodeSystem/read-access-tag"/><code value="ALL"/></tag>
      </meta>
      <url value="http://dsf.dev/fhir/Questionnaire/review"/>
      <version value="#{{version}}"/>
      <date value="#{{date}}"/>
      <status value="unknown"/>
      {items}"""


def item(link_id: str, item_type: str = "string", required: str = "true") -> str:
    return (f'<item><linkId value="{link_id}"/><text value="{link_id}"/>'
            f'<type value="{item_type}"/><required value="{required}"/></item>')


class TestQuestionnaireRule:
    """Test user task forms."""

    def test_valid_questionnaire(self, route, samples):
        items = route(samples.fhir("Questionnaire", questionnaire(item("user-task-id") + item("approve", "boolean"))))
        assert problems(items) == []
        assert severities(items, "questionnaire_mandatory_item") == [Severity.SUCCESS]

    def test_mandatory_item_missing(self, route, samples):
        items = route(samples.fhir("Questionnaire", questionnaire(item("approve", "boolean"))))
        assert severities(items, "questionnaire_mandatory_item_missing") == [Severity.ERROR]

    def test_mandatory_item_shape(self, route, samples):
        items = route(samples.fhir("Questionnaire", questionnaire(item("user-task-id", required="false"))))
        assert severities(items, "questionnaire_mandatory_item_not_required") == [Severity.ERROR]

        items = route(samples.fhir("Questionnaire", questionnaire(item("user-task-id", "integer"))))
        assert severities(items, "questionnaire_mandatory_item_type") == [Severity.ERROR]

    def test_link_ids(self, route, samples):
        items = route(samples.fhir("Questionnaire", questionnaire(
            item("user-task-id") + item("Approve_It", "boolean") + item("Approve_It", "boolean"))))

        assert severities(items, "questionnaire_link_id_duplicate") == [Severity.ERROR]
        assert severities(items, "questionnaire_link_id_unusual") == [Severity.WARN, Severity.WARN]

    def test_profile_needs_a_version(self, route, samples):
        document = samples.fhir("Questionnaire", questionnaire(item("user-task-id"))).replace("|1.5.0", "")
        items = route(document)
        assert severities(items, "questionnaire_profile_invalid") == [Severity.ERROR]
