"""
CONFIGURATION FILE - AInstein ArchiMate Query Core

This file contains the namespaces, folder/layer mapping, the ArchiMate 3.2
type taxonomy, query-intent phrase tables and the validation and traversal
settings used by the model repository and the response assembler.
"""
import os

# ---- Namespaces ----
XSI = "http://www.w3.org/2001/XMLSchema-instance"
ARCHIMATE = "http://www.archimatetool.com/archimate"

# =============================================================================
# MODEL DISCOVERY
# =============================================================================

MODELS_DIR = os.getenv("AINSTEIN_MODELS_DIR", "./ArchiMetal")
MODEL_FILE_SUFFIX = ".archimate"
MODEL_ROOT_TAG = "model"

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.getenv("AINSTEIN_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# =============================================================================
# FOLDERS AND LAYERS
# =============================================================================

# Folder @type (lowercased, "_", "&" and spaces removed) -> layer
FOLDER_LAYER_MAP = {
    "strategy": "strategy",
    "business": "business",
    "application": "application",
    "technology": "technology",
    "implementation": "implementation",
    "implementationmigration": "implementation",
}

# Unrecognized folder types land here (motivation, other, ...)
DEFAULT_LAYER = "business"

LAYERS = ["strategy", "business", "application", "technology", "implementation"]

RELATIONS_FOLDER_TYPE = "relations"
DIAGRAMS_FOLDER_TYPE = "diagrams"
DIAGRAM_MODEL_TYPES = ["ArchimateDiagramModel", "SketchModel", "CanvasModel"]

# Folder to create when the updater inserts an element of a given layer
LAYER_FOLDER_NAMES = {
    "strategy": ("Strategy", "strategy"),
    "business": ("Business", "business"),
    "application": ("Application", "application"),
    "technology": ("Technology & Physical", "technology"),
    "physical": ("Technology & Physical", "technology"),
    "motivation": ("Motivation", "motivation"),
    "implementation": ("Implementation & Migration", "implementation_migration"),
    "other": ("Other", "other"),
}

# =============================================================================
# ARCHIMATE 3.2 ELEMENT TYPES (layer -> aspect -> canonical names)
# =============================================================================

ELEMENT_TYPES = {
    "business": {
        "active": ["BusinessActor", "BusinessRole", "BusinessCollaboration", "BusinessInterface"],
        "behavior": ["BusinessProcess", "BusinessFunction", "BusinessInteraction",
                     "BusinessEvent", "BusinessService"],
        "passive": ["BusinessObject", "Contract", "Representation", "Product"],
    },
    "application": {
        "active": ["ApplicationComponent", "ApplicationCollaboration", "ApplicationInterface"],
        "behavior": ["ApplicationFunction", "ApplicationInteraction", "ApplicationProcess",
                     "ApplicationEvent", "ApplicationService"],
        "passive": ["DataObject"],
    },
    "technology": {
        "active": ["Node", "Device", "SystemSoftware", "TechnologyCollaboration",
                   "TechnologyInterface", "Path", "CommunicationNetwork"],
        "behavior": ["TechnologyFunction", "TechnologyProcess", "TechnologyInteraction",
                     "TechnologyEvent", "TechnologyService"],
        "passive": ["Artifact"],
    },
    "physical": {
        "active": ["Equipment", "Facility", "DistributionNetwork"],
        "passive": ["Material"],
    },
    "strategy": {
        "active": ["Resource"],
        "behavior": ["Capability", "ValueStream", "CourseOfAction"],
    },
    "implementation": {
        "behavior": ["WorkPackage", "ImplementationEvent"],
        "passive": ["Deliverable", "Plateau", "Gap"],
    },
    "motivation": {
        "motivation": ["Stakeholder", "Driver", "Assessment", "Goal", "Outcome",
                       "Principle", "Requirement", "Constraint", "Meaning", "Value"],
    },
    "other": {
        "composite": ["Location", "Grouping", "Junction"],
    },
}

RELATIONSHIP_TYPES = [
    "CompositionRelationship", "AggregationRelationship", "AssignmentRelationship",
    "RealizationRelationship", "ServingRelationship", "AccessRelationship",
    "InfluenceRelationship", "TriggeringRelationship", "FlowRelationship",
    "SpecializationRelationship", "AssociationRelationship",
]

# Only these two relationship types define the organizational hierarchy
ORGANIZATIONAL_RELATIONSHIP_TYPES = ["CompositionRelationship", "AssignmentRelationship"]

# Relationships followed by the data-flow (execution) chain
EXECUTION_RELATIONSHIP_TYPES = ["FlowRelationship", "TriggeringRelationship"]

# =============================================================================
# QUERY INTENT PHRASE TABLES
# =============================================================================

# Flag -> phrases; a flag is set when any phrase matches
INTENT_FLAG_PHRASES = {
    "wants_list": ["list", "all", "show", "what are", "which are", "name the", "enumerate"],
    "wants_count": ["how many", "count", "number of", "total number"],
    "wants_relationships": ["relationship", "structure", "hierarchy", "reports to",
                            "organigram", "org chart"],
    "wants_details": ["detail", "describe", "explain", "comprehensive"],
}

IMPACT_PHRASES = ["impact", "affect", "depends on", "depend on", "dependencies", "dependency",
                  "what uses", "what applications use", "applications call"]

EXECUTION_PHRASES = ["data flow", "flow into", "flows into", "which data objects",
                     "execution", "trigger"]

# First match wins, in this order
ELEMENT_TYPE_PHRASES = [
    ("execution", EXECUTION_PHRASES),
    ("impact", IMPACT_PHRASES),
    ("actor", ["actor", "organization", "organisation", "organizational", "organisational",
               "unit", "department"]),
    ("process", ["process"]),
    ("function", ["function"]),
    ("service", ["service"]),
]

# =============================================================================
# RESPONSE VALIDATION
# =============================================================================

VALIDATION = {
    "max_count_only_lines": 3,
    # element type -> words that must not appear in an answer about it
    "type_leak_words": {
        "actor": ["process", "function"],
        "process": ["actor", "function"],
        "function": ["actor", "process"],
    },
}

# Bold claimed-count label -> canonical type it is checked against
COUNTED_TYPE_LABELS = {
    "business actor": "BusinessActor",
    "business process": "BusinessProcess",
    "business function": "BusinessFunction",
    "business service": "BusinessService",
    "application component": "ApplicationComponent",
}

# =============================================================================
# TRAVERSAL
# =============================================================================

TRAVERSAL = {
    "default_max_depth": 3,
    "report_max_depth": 2,
}

# Impact report sections, in display order
IMPACT_REPORT_GROUPS = ["Business Layer", "Application Layer", "Technology Layer",
                        "Data Objects", "Other Elements"]

# =============================================================================
# VISUALIZATION
# =============================================================================

LAYER_COLORS = {
    "motivation": "#e74c3c",
    "strategy": "#9b59b6",
    "business": "#3498db",
    "application": "#2ecc71",
    "technology": "#f39c12",
    "physical": "#f39c12",
    "implementation": "#1abc9c",
    "other": "#95a5a6",
}

LAYER_ORDER = ["motivation", "strategy", "business", "application", "technology",
               "physical", "implementation", "other"]
