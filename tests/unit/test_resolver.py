"""Unit tests for the resource index and cross-reference resolver."""

import zipfile

import pytest

from dsf_lint.cache import ReferenceCache
from dsf_lint.resolver import CrossReferenceResolver, ResourceIndex, ResourceKind, find_resource_roots, strip_version


@pytest.fixture
def resolver(ping_plugin):
    roots = find_resource_roots(ping_plugin.root)
    return CrossReferenceResolver(ResourceIndex(ping_plugin.root, roots))


class TestResourceRoots:
    """Test discovery of the folder that holds fhir/."""

    def test_maven_layout(self, ping_plugin):
        assert find_resource_roots(ping_plugin.root) == [ping_plugin.resources.resolve()]

    def test_first_candidate_wins(self, plugin, samples):
        plugin.write("target/classes/fhir/Task/task.xml", samples.ping_task())
        plugin.fhir("Task", "task.xml", samples.ping_task())
        assert find_resource_roots(plugin.root) == [plugin.resources.resolve()]

    def test_build_output_fallback(self, plugin, samples):
        plugin.write("target/classes/fhir/Task/task.xml", samples.ping_task())
        assert find_resource_roots(plugin.root) == [(plugin.root / "target" / "classes").resolve()]

    def test_no_resources(self, plugin):
        assert find_resource_roots(plugin.root) == []


class TestLookups:
    """Test cross-document lookups."""

    def test_strip_version(self):
        assert strip_version("http://dsf.dev/bpe/Process/ping|#{version}") == "http://dsf.dev/bpe/Process/ping"
        assert strip_version(None) is None

    def test_activity_definition_ignores_version(self, resolver, samples):
        entry = resolver.activity_definition_for(f"{samples.process_url}|#{{version}}")
        assert entry is not None
        assert entry.kind == ResourceKind.ACTIVITY_DEFINITION
        assert entry.url == samples.process_url

    def test_exact_lookup_requires_matching_version(self, resolver, samples):
        assert resolver.exists(ResourceKind.ACTIVITY_DEFINITION, f"{samples.process_url}|#{{version}}", any_version=False)
        assert not resolver.exists(ResourceKind.ACTIVITY_DEFINITION, f"{samples.process_url}|1.0", any_version=False)

    def test_message_name_lookup(self, resolver):
        assert resolver.activity_definition_with_message("startPing") is not None
        assert resolver.activity_definition_with_message("stopPing") is None

    def test_structure_definition_containing_fixed_string(self, resolver, samples):
        entry = resolver.structure_definition_containing("startPing")
        assert entry is not None
        assert entry.url == samples.task_profile

    def test_structure_definition_for_profile(self, resolver, samples):
        assert resolver.structure_definition_for(f"{samples.task_profile}|#{{version}}") is not None

    def test_blank_identifiers_are_not_found(self, resolver):
        assert resolver.locate(ResourceKind.TASK, None) is None
        assert resolver.locate(ResourceKind.TASK, "  ") is None

    def test_questionnaire_missing(self, resolver):
        assert resolver.questionnaire_for("http://dsf.dev/fhir/Questionnaire/none|#{version}") is None


class TestIndexing:
    """Test how the index is built."""

    def test_each_kind_is_scanned_once(self, ping_plugin, samples):
        index = ResourceIndex(ping_plugin.root, find_resource_roots(ping_plugin.root))
        resolver = CrossReferenceResolver(index)

        for _ in range(3):
            resolver.activity_definition_for(samples.process_url)
            resolver.activity_definition_with_message("startPing")

        assert index.scan_counts[ResourceKind.ACTIVITY_DEFINITION] == 1

    def test_lookups_are_memoized_in_shared_cache(self, ping_plugin, samples):
        cache = ReferenceCache()
        resolver = CrossReferenceResolver(ResourceIndex(ping_plugin.root, None, cache=cache))

        resolver.activity_definition_for(samples.process_url)
        hits = cache.stats()["hits"]
        resolver.activity_definition_for(samples.process_url)

        assert cache.stats()["hits"] == hits + 1

    def test_duplicates_keep_first_file(self, ping_plugin, samples):
        ping_plugin.fhir("ActivityDefinition", "zping-copy.xml", samples.ping_activity_definition)
        index = ResourceIndex(ping_plugin.root)

        duplicates = index.duplicates(ResourceKind.ACTIVITY_DEFINITION)

        assert list(duplicates) == [samples.process_url]
        assert duplicates[samples.process_url][0].source.endswith("zping-copy.xml")
        assert index.lookup(ResourceKind.ACTIVITY_DEFINITION, samples.process_url).source.endswith("/ping.xml")

    def test_other_versions_are_not_duplicates(self, ping_plugin, samples):
        first = samples.ping_activity_definition.replace("#{version}", "1.0")
        ping_plugin.fhir("ActivityDefinition", "ping.xml", first)
        ping_plugin.fhir("ActivityDefinition", "zping-2.xml", first.replace('"1.0"', '"2.0"'))
        index = ResourceIndex(ping_plugin.root)
        kind = ResourceKind.ACTIVITY_DEFINITION

        assert index.duplicates(kind) == {}
        assert index.lookup(kind, f"{samples.process_url}|1.0", any_version=False).source.endswith("/ping.xml")
        assert index.lookup(kind, f"{samples.process_url}|2.0", any_version=False).source.endswith("/zping-2.xml")
        assert index.lookup(kind, samples.process_url).source.endswith("/ping.xml")

    def test_unparsable_files_are_skipped(self, ping_plugin):
        ping_plugin.fhir("ActivityDefinition", "broken.xml", "<ActivityDefinition")
        index = ResourceIndex(ping_plugin.root)
        assert len(index.entries(ResourceKind.ACTIVITY_DEFINITION)) == 1

    def test_wrong_resource_type_in_folder_is_ignored(self, ping_plugin, samples):
        ping_plugin.fhir("ActivityDefinition", "task.xml", samples.ping_task())
        index = ResourceIndex(ping_plugin.root)
        assert len(index.entries(ResourceKind.ACTIVITY_DEFINITION)) == 1

    def test_json_resources_are_indexed(self, plugin):
        plugin.fhir("Questionnaire", "form.json",
                    '{"resourceType": "Questionnaire", "url": "http://dsf.dev/fhir/Questionnaire/ping"}')
        resolver = CrossReferenceResolver(ResourceIndex(plugin.root))
        assert resolver.questionnaire_for("http://dsf.dev/fhir/Questionnaire/ping|#{version}") is not None

    def test_resources_from_jar_at_project_root(self, plugin, samples):
        with zipfile.ZipFile(plugin.root / "dependency.jar", "w") as archive:
            archive.writestr("fhir/ActivityDefinition/ping.xml", samples.ping_activity_definition)

        resolver = CrossReferenceResolver(ResourceIndex(plugin.root))
        entry = resolver.activity_definition_for(samples.process_url)

        assert entry is not None
        assert "dependency.jar!/fhir/ActivityDefinition/ping.xml" in entry.source

    def test_jars_can_be_disabled(self, plugin, samples):
        with zipfile.ZipFile(plugin.root / "dependency.jar", "w") as archive:
            archive.writestr("fhir/ActivityDefinition/ping.xml", samples.ping_activity_definition)

        resolver = CrossReferenceResolver(ResourceIndex(plugin.root, include_jars=False))
        assert resolver.activity_definition_for(samples.process_url) is None
