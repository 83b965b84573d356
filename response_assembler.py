"""
RESPONSE ASSEMBLER - Turns a question into a Markdown answer read off the model graph

Every answer goes through validate_response() before it is returned. Claimed
counts are re-derived from the repository and corrected in place. Type leaks,
verbose count answers and actor lists that drop or invent names are only
logged. Validation never raises.
"""
import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ainstein_config import (
    COUNTED_TYPE_LABELS, EXECUTION_RELATIONSHIP_TYPES, IMPACT_REPORT_GROUPS, TRAVERSAL, VALIDATION,
)
from archimate_core import Element
from archimate_types import display_type, is_exact_type, type_layer
from org_analyzer import OrganizationalAnalyzer
from query_intent import ElementType, QueryIntent, analyze_query_intent
from relationship_traversal import RelationshipTraversal

logger = logging.getLogger(__name__)

_CLAIMED_COUNT = re.compile(
    r"\*\*(\d+) (" + "|".join(re.escape(label) for label in COUNTED_TYPE_LABELS) + r")(s|es)?\*\*",
    re.IGNORECASE,
)
_ID_TOKEN = re.compile(r"[\w.\-]+")
_BULLET_ITEM = re.compile(r"^[ \t]*[-•][ \t]+(.+?)[ \t]*$", re.MULTILINE)
# bullet and tree lines carry element names, not prose
_NAME_LINE = re.compile(r"^[ \t]*(?:[-•]|└──|├──)[ \t]+.*$", re.MULTILINE)

# element type -> (canonical type, singular label, plural label)
TYPED_QUERIES = {
    ElementType.PROCESS: ("BusinessProcess", "business process", "business processes"),
    ElementType.FUNCTION: ("BusinessFunction", "business function", "business functions"),
    ElementType.SERVICE: ("BusinessService", "business service", "business services"),
}

NO_MODELS_MESSAGE = ("I don't see any loaded ArchiMate models, so I can't answer from the architecture. "
                     "Check that the models directory contains .archimate files.")
FALLBACK_MESSAGE = "I'm sorry, I couldn't answer that from the loaded ArchiMate models."


@dataclass
class ValidationResult:
    is_valid: bool
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    # claimed-count label (as written) -> true count
    corrections: Dict[str, int] = field(default_factory=dict)


def _plural(word: str) -> str:
    return word + ("es" if word.endswith("s") else "s")


def _count_phrase(count: int, singular: str, plural: Optional[str] = None) -> str:
    return f"{count} {singular if count == 1 else (plural or _plural(singular))}"


def _listed_items(response: str) -> List[str]:
    """Plain bullet items of an answer. Relationship bullets (A → B) are skipped."""
    return [item for item in _BULLET_ITEM.findall(response) if "→" not in item]


def _match_name(item: str, names) -> Optional[str]:
    if item in names:
        return item
    # detailed bullets read "name: documentation"
    for name in sorted(names, key=len, reverse=True):
        if item.startswith(name + ":"):
            return name
    return None


def _impact_group(element: Element) -> str:
    if is_exact_type(element, "DataObject"):
        return "Data Objects"
    layer = type_layer(element.type)
    if layer == "business":
        return "Business Layer"
    if layer == "application":
        return "Application Layer"
    if layer in ("technology", "physical"):
        return "Technology Layer"
    return "Other Elements"


class ResponseAssembler:
    def __init__(self, repository):
        self.repository = repository
        self.org_analyzer = OrganizationalAnalyzer(repository)
        self.traversal = RelationshipTraversal(repository)

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    def generate_response(self, query: str) -> str:
        """Answer a free-text question. Internal failures degrade to an overview."""
        try:
            self.repository.ensure_loaded()
            intent = analyze_query_intent(query)
            response = self.render(query, intent)

            validation = self.validate_response(response, intent.element_type, count_only=intent.count_only)
            if not validation.is_valid:
                logger.warning(f"Response validation failed: {validation.issues}")
                response = self.attempt_auto_correction(response, validation)
            return response
        except Exception:
            logger.exception(f"Failed to generate response for query {query!r}")
            return self._fallback()

    def _fallback(self) -> str:
        try:
            return self.render_overview(QueryIntent())
        except Exception:
            logger.exception("Overview fallback failed")
            return FALLBACK_MESSAGE

    def render(self, query: str, intent: QueryIntent) -> str:
        if not self.repository.get_all_models():
            return NO_MODELS_MESSAGE

        if intent.element_type in (ElementType.IMPACT, ElementType.EXECUTION):
            return self.render_impact_report(query, execution=intent.element_type == ElementType.EXECUTION)

        if intent.element_type == ElementType.ACTOR:
            if not self.repository.get_business_actors_only():
                return "I don't see any business actors in the loaded models."
            if intent.wants_count and not intent.wants_list:
                return self.render_actor_count()
            if intent.wants_relationships:
                return self.render_actor_relationships()
            if intent.wants_list and not intent.wants_count:
                return self.render_actor_list()
            return self.render_actor_list_with_count(intent.wants_details)

        if intent.element_type in TYPED_QUERIES:
            return self.render_typed_elements(intent)

        if intent.count_only:
            return self.render_element_count(query)
        return self.render_overview(intent)

    def render_element_count(self, query: str) -> str:
        """One-line count for the counted type named in the query, else all elements."""
        text = query.lower()
        for label, type_name in COUNTED_TYPE_LABELS.items():
            if re.search(rf"\b{re.escape(label)}(?:s|es)?\b", text):
                count = len(self.repository.get_elements_of_type(type_name))
                verb = "is" if count == 1 else "are"
                return f"There {verb} **{_count_phrase(count, label)}** in the loaded models."

        total = self.repository.get_element_counts().total
        verb = "is" if total == 1 else "are"
        return f"There {verb} **{_count_phrase(total, 'element')}** in the loaded models."

    # =========================================================================
    # BUSINESS ACTORS
    # =========================================================================

    def render_actor_count(self) -> str:
        analysis = self.org_analyzer.analyze()
        verb = "is" if analysis.total == 1 else "are"
        return (f"There {verb} **{_count_phrase(analysis.total, 'business actor')}** in the loaded models "
                f"({_count_phrase(len(analysis.internal_actors), 'internal actor')}, "
                f"{_count_phrase(len(analysis.external_actors), 'external partner')}, "
                f"{_count_phrase(len(analysis.departments), 'department')}).")

    def render_actor_list(self) -> str:
        actors = sorted(self.repository.get_business_actors_only(), key=lambda a: a.name.lower())
        lines = ["Business actors in the loaded models:", ""]
        lines.extend(f"- {actor.name}" for actor in actors)
        return "\n".join(lines) + "\n"

    def render_actor_list_with_count(self, details: bool = False) -> str:
        analysis = self.org_analyzer.analyze()
        sections = [
            ("Internal Organizational Actors", analysis.internal_actors),
            ("External Business Partners", analysis.external_actors),
            ("Internal Departments", analysis.departments),
        ]
        response = f"I found **{analysis.total} business actors** in the loaded models:\n\n"
        for title, actors in sections:
            response += f"**{title} ({len(actors)}):**\n"
            for actor in actors:
                response += self._bullet(actor, details)
            response += "\n"
        response += f"**Total: {analysis.total} business actors**\n\n"
        response += "*Note: Organization structure based on actual ArchiMate CompositionRelationship elements in the parsed models.*"
        return response

    def render_actor_relationships(self) -> str:
        actors = self.repository.get_business_actors_only()
        structure = self.org_analyzer.get_organizational_structure()

        response = f"**Business Actor Organizational Structure ({len(actors)} actors):**\n\n"

        if structure.composition_relationships:
            response += f"**Composition Relationships ({len(structure.composition_relationships)}):**\n"
            response += "Showing actual parent-child relationships from the ArchiMate model:\n\n"
            for parent, children in structure.hierarchy().items():
                response += f"└── {parent}\n"
                for child in children:
                    response += f"    ├── {child}\n"
            response += "\n"

        if structure.assignment_relationships:
            response += f"**Assignment Relationships ({len(structure.assignment_relationships)}):**\n"
            response += "Showing actual assignments from the ArchiMate model:\n\n"
            for assignee, assigned in structure.assignments():
                response += f"• {assignee} → {assigned}\n"
            response += "\n"

        if structure.is_empty():
            response += "**No organizational relationships found in the ArchiMate models.**\n"
            response += ("The business actors exist as individual elements without defined "
                         "hierarchical or assignment relationships.\n\n")
            response += "**All Business Actors (alphabetical):**\n"
            for actor in sorted(actors, key=lambda a: a.name.lower()):
                response += f"• {actor.name}\n"

        response += "\n*Based on actual parsed ArchiMate relationships, not naming assumptions.*"
        return response

    # =========================================================================
    # PROCESSES / FUNCTIONS / SERVICES
    # =========================================================================

    def render_typed_elements(self, intent: QueryIntent) -> str:
        type_name, singular, plural = TYPED_QUERIES[intent.element_type]
        elements = self.repository.get_elements_of_type(type_name)

        if not elements:
            return f"I don't see any {plural} in the loaded models."
        if intent.wants_count and not intent.wants_list:
            if len(elements) == 1:
                return f"There is **1 {singular}** in the loaded models."
            return f"There are **{len(elements)} {plural}** in the loaded models."

        response = f"**{plural.title()} ({len(elements)} total):**\n\n"
        for element in elements:
            response += self._bullet(element, intent.wants_details)
        return response

    @staticmethod
    def _bullet(element: Element, details: bool) -> str:
        if details and element.documentation:
            return f"- {element.name}: {element.documentation.splitlines()[0]}\n"
        return f"- {element.name}\n"

    # =========================================================================
    # OVERVIEW
    # =========================================================================

    def render_overview(self, intent: Optional[QueryIntent] = None) -> str:
        if not self.repository.get_all_models():
            return NO_MODELS_MESSAGE

        counts = self.repository.get_element_counts()
        structure = self.org_analyzer.get_organizational_structure()

        response = "**Model Element Summary:**\n\n"
        response += f"- Business Actors: {counts.business_actors}\n"
        response += f"- Business Roles: {counts.business_roles}\n"
        response += f"- Business Processes: {counts.business_processes}\n"
        response += f"- Business Functions: {counts.business_functions}\n"
        response += f"- Business Services: {counts.business_services}\n"
        response += f"- Application Components: {counts.application_components}\n"
        response += f"- Technology Nodes: {counts.technology_nodes}\n"
        response += f"\n**Total Elements: {counts.total}**\n\n"

        response += "**Model Relationship Data:**\n"
        response += f"- Composition Relationships: {len(structure.composition_relationships)}\n"
        response += f"- Assignment Relationships: {len(structure.assignment_relationships)}\n\n"

        if structure.is_empty():
            response += "⚠️ **Data Quality**: No organizational relationships found - elements exist as individuals\n"
        else:
            response += "✅ **Data Quality**: Organizational structure based on actual ArchiMate relationships\n"

        if intent is not None and intent.wants_details:
            response += "\n**Loaded Models:**\n"
            for name, summary in self.repository.get_model_summary().items():
                response += (f"- {name}: {summary['elements']} elements, "
                             f"{summary['relationships']} relationships, {summary['views']} views\n")

        response += "\n*All counts and structures derived from parsed ArchiMate XML models.*"
        return response

    # =========================================================================
    # IMPACT / EXECUTION
    # =========================================================================

    def find_target_element(self, query: str) -> Optional[Element]:
        """Element named in the query: an exact id first, then the longest mentioned name."""
        for token in _ID_TOKEN.findall(query):
            element = self.repository.get_element(token)
            if element is not None:
                return element

        text = query.lower()
        best: Optional[Element] = None
        best_rank = None
        for element in self.repository.iter_elements():
            name = element.name.strip().lower()
            if not name or not re.search(rf"(?<!\w){re.escape(name)}(?!\w)", text):
                continue
            preferred = is_exact_type(element, "ApplicationComponent") or is_exact_type(element, "ApplicationService")
            rank = (len(name), preferred)
            if best_rank is None or rank > best_rank:
                best, best_rank = element, rank
        return best

    def render_impact_report(self, query: str, execution: bool = False) -> str:
        element = self.find_target_element(query)
        if element is None:
            components = self.repository.get_elements_of_type("ApplicationComponent")[:5]
            response = "❌ **Element Not Found**\n\n"
            response += "I couldn't find an element from your question in the loaded models.\n"
            if components:
                response += "\n**Application components you could ask about:**\n"
                for component in components:
                    response += f"- {component.name} ({display_type(component.type)})\n"
            return response

        name = element.name
        relationships = self.traversal.get_element_relationships(element.id)

        response = f"## 🔍 **Relationship Dependency Analysis: \"{name}\"**\n\n"
        response += f"**Element Type:** {display_type(element.type)}\n"
        response += f"**Element ID:** {element.id}\n\n"

        if not relationships:
            total = sum(len(model.relationships) for model in self.repository.get_all_models())
            response += "❌ **No relationships found** - this element is isolated in the relationship graph.\n\n"
            response += f"**Total relationships in models:** {total}\n"
            return response

        by_type: Dict[str, int] = OrderedDict()
        for rel in relationships:
            rel_type = display_type(rel.type)
            by_type[rel_type] = by_type.get(rel_type, 0) + 1

        response += "### 📊 **Relationship Summary**\n"
        response += f"**Direct Relationships:** {len(relationships)}\n\n"
        response += "**Relationship Types Found:**\n"
        for rel_type, count in by_type.items():
            response += f"- **{rel_type}:** {count} connections\n"

        if execution:
            response += self._render_execution_sections(element)
        else:
            response += self._render_usage_sections(element)

        response += self._render_impact_chain(element)
        return response

    def _render_usage_sections(self, element: Element) -> str:
        name = element.name
        response = f"\n### 🎯 **Elements Using \"{name}\"**\n"
        incoming = self.traversal.get_incoming(element.id)
        if incoming:
            for rel, source in incoming:
                response += (f"- **{source.name}** ({display_type(source.type)}) → "
                             f"*{display_type(rel.type)}* → {name}\n")
        else:
            response += f"Nothing directly uses \"{name}\" as a target in the relationship graph.\n"

        response += f"\n### 📤 **Dependencies of \"{name}\"**\n"
        outgoing = self.traversal.get_outgoing(element.id)
        if outgoing:
            for rel, target in outgoing:
                response += (f"- {name} → *{display_type(rel.type)}* → "
                             f"**{target.name}** ({display_type(target.type)})\n")
        else:
            response += f"\"{name}\" has no outgoing dependencies.\n"
        return response

    def _render_execution_sections(self, element: Element) -> str:
        name = element.name
        response = f"\n### 📊 **Data Objects Flowing Into \"{name}\"**\n"
        data_inputs = [(rel, source) for rel, source in self.traversal.get_incoming(element.id)
                       if is_exact_type(source, "DataObject")]
        if data_inputs:
            for rel, source in data_inputs:
                response += (f"- **{source.name}** ({display_type(source.type)}) → "
                             f"*{display_type(rel.type)}* → {name}\n")
        else:
            response += f"❌ **No data objects found with direct relationships to \"{name}\"**\n"

        response += f"\n### 🔄 **Flow and Trigger Chain from \"{name}\"**\n"
        chain = self.traversal.get_dependency_chain(
            element.id,
            relationship_types=EXECUTION_RELATIONSHIP_TYPES,
            direction="outgoing",
            max_depth=TRAVERSAL["report_max_depth"],
        )
        if chain:
            for depth, rel, target in chain:
                indent = "  " * (depth - 1)
                response += f"{indent}- *{display_type(rel.type)}* → **{target.name}** ({display_type(target.type)})\n"
        else:
            response += f"\"{name}\" does not flow into or trigger any other element.\n"
        return response

    def _render_impact_chain(self, element: Element) -> str:
        response = "\n### 💥 **Complete Impact Chain Analysis**\n"
        impacted = self.traversal.get_impacted_elements(element.id, TRAVERSAL["report_max_depth"])
        if not impacted:
            return response + "No cascading impacts detected in the relationship graph.\n"

        response += f"**Total Impact**: {len(impacted)} elements across the architectural layers\n\n"
        groups: Dict[str, List[Element]] = OrderedDict((group, []) for group in IMPACT_REPORT_GROUPS)
        for impacted_element in impacted:
            groups[_impact_group(impacted_element)].append(impacted_element)

        for group, members in groups.items():
            if not members:
                continue
            response += f"#### {group} ({len(members)} elements)\n"
            for member in members:
                response += f"- **{member.name}** ({display_type(member.type)})\n"
            response += "\n"
        return response

    # =========================================================================
    # SELF-VALIDATION
    # =========================================================================

    def validate_response(self, response: str, element_type, count_only: bool = False) -> ValidationResult:
        """Re-derive claimed counts and check type purity and verbosity of an answer."""
        issues: List[str] = []
        suggestions: List[str] = []
        corrections: Dict[str, int] = {}

        for match in _CLAIMED_COUNT.finditer(response):
            claimed = int(match.group(1))
            label = match.group(2).lower()
            actual = len(self.repository.get_elements_of_type(COUNTED_TYPE_LABELS[label]))
            if claimed != actual:
                issues.append(f"Count mismatch: claimed {claimed}, actual {actual} ({label})")
                suggestions.append(f"Update count to {actual}")
                corrections[label] = actual

        type_key = element_type.value if isinstance(element_type, ElementType) else str(element_type)
        prose = _NAME_LINE.sub("", response).lower()
        for word in VALIDATION["type_leak_words"].get(type_key, []):
            if re.search(rf"\b{re.escape(word)}(?:s|es)?\b", prose):
                issues.append(f"Response includes {_plural(word)} when only {_plural(type_key)} were requested")
                suggestions.append(f"Remove {word} information from response")

        if type_key == ElementType.ACTOR.value:
            listed = _listed_items(response)
            if listed:
                actor_issues = self._check_actor_names(listed)
                issues.extend(actor_issues)
                if actor_issues:
                    suggestions.append("List exactly the business actors found in the models")

        line_count = len(response.split("\n"))
        if count_only and line_count > VALIDATION["max_count_only_lines"]:
            issues.append("Response too verbose for a count query")
            suggestions.append("Simplify to just the count")

        return ValidationResult(is_valid=not issues, issues=issues, suggestions=suggestions, corrections=corrections)

    def _check_actor_names(self, listed: List[str]) -> List[str]:
        actor_names = {actor.name for actor in self.repository.get_business_actors_only()}
        issues = []
        found = set()
        for item in listed:
            name = _match_name(item, actor_names)
            if name is None:
                issues.append(f"Listed item is not a business actor: {item}")
            else:
                found.add(name)
        for name in sorted(actor_names - found):
            issues.append(f"Missing business actor: {name}")
        return issues

    def attempt_auto_correction(self, response: str, validation: ValidationResult) -> str:
        """Rewrite every wrong claimed count to the true value. Other issues are left as-is."""
        if not validation.corrections:
            return response

        def _fix(match):
            label = match.group(2).lower()
            if label not in validation.corrections:
                return match.group(0)
            return f"**{validation.corrections[label]} {match.group(2)}{match.group(3) or ''}**"

        return _CLAIMED_COUNT.sub(_fix, response)
