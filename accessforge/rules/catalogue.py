# accessforge/rules/catalogue.py
"""
Built-in accessibility rule catalogue.

Rules are stored as portable dictionaries (camelCase keys, `type` as the
kind tag) so the same records can be exchanged with other tools, and are
validated into typed RuleDefinitions once by load_catalogue().
"""

from typing import Any, Dict, List, Mapping, Optional

from accessforge.core.exceptions import RuleCatalogueError
from accessforge.rules.models import RuleDefinition, parse_rule

CATALOGUE_VERSION = "2024.1"

STANDARDS_VERSION: Dict[str, str] = {
    "wcag": "2.1",
    "wcag22": "2.2",
    "section508": "2018 Refresh",
    "en301549": "V3.2.1",
}

RULESETS: Dict[str, List[Dict[str, Any]]] = {
    "wcag21": [
        {
            "id": "wcag21_1_1_1",
            "name": "Non-text Content",
            "category": "Images",
            "standard": "wcag21",
            "level": "A",
            "type": "count",
            "dataPath": "images.missing_alt",
            "threshold": 0,
            "operator": "max",
            "weight": 4,
            "applicableDetectors": ["wcag_compliance", "screen_reader"],
            "recommendation": "Provide text alternatives for all non-text content",
            "severity": "critical",
        },
        {
            "id": "wcag21_1_3_1",
            "name": "Info and Relationships",
            "category": "Structure",
            "standard": "wcag21",
            "level": "A",
            "type": "boolean",
            "dataPath": "semantic_structure.proper_headings",
            "expectedValue": True,
            "weight": 3,
            "applicableDetectors": ["wcag_compliance", "screen_reader"],
            "recommendation": "Use proper heading hierarchy and semantic markup",
            "severity": "high",
        },
        {
            "id": "wcag21_1_3_5",
            "name": "Identify Input Purpose",
            "category": "Forms",
            "standard": "wcag21",
            "level": "AA",
            "type": "composite",
            "mode": "all",
            "weight": 2,
            "applicableDetectors": ["wcag_compliance"],
            "recommendation": "Add autocomplete tokens and programmatic labels to personal data fields",
            "rules": [
                {
                    "type": "boolean",
                    "dataPath": "forms.autocomplete_attributes",
                    "expectedValue": True,
                },
                {
                    "type": "boolean",
                    "dataPath": "forms.programmatic_labels",
                    "expectedValue": True,
                },
            ],
        },
        {
            "id": "wcag21_1_4_3",
            "name": "Contrast (Minimum)",
            "category": "Color",
            "standard": "wcag21",
            "level": "AA",
            "type": "threshold",
            "dataPath": "color_contrast.minimum_ratio",
            "threshold": 4.5,
            "operator": "gte",
            "weight": 4,
            "applicableDetectors": ["color_contrast"],
            "recommendation": "Ensure text has sufficient contrast ratio",
            "severity": "high",
        },
        {
            "id": "wcag21_1_4_6",
            "name": "Contrast (Enhanced)",
            "category": "Color",
            "standard": "wcag21",
            "level": "AAA",
            "type": "threshold",
            "dataPath": "color_contrast.minimum_ratio",
            "threshold": 7.0,
            "operator": "gte",
            "weight": 2,
            "applicableDetectors": ["color_contrast"],
        },
        {
            "id": "wcag21_1_4_10",
            "name": "Reflow",
            "category": "Layout",
            "standard": "wcag21",
            "level": "AA",
            "type": "conditional",
            "condition": {"type": "context", "property": "device", "value": "mobile"},
            "weight": 2,
            "mobileWeight": 4,
            "applicableDetectors": ["wcag_compliance"],
            "recommendation": "Let content reflow at 320 CSS pixels without horizontal scrolling",
            "severity": "medium",
            "rule": {
                "type": "boolean",
                "dataPath": "layout.reflows_without_scroll",
                "expectedValue": True,
            },
        },
        {
            "id": "wcag21_2_1_1",
            "name": "Keyboard",
            "category": "Keyboard",
            "standard": "wcag21",
            "level": "A",
            "type": "percentage",
            "dataPath": "keyboard_accessibility.accessible_percentage",
            "threshold": 100,
            "operator": "eq",
            "weight": 4,
            "applicableDetectors": ["keyboard_navigation"],
            "recommendation": "Make all functionality available via keyboard",
            "severity": "critical",
        },
        {
            "id": "wcag21_2_1_2",
            "name": "No Keyboard Trap",
            "category": "Keyboard",
            "standard": "wcag21",
            "level": "A",
            "type": "count",
            "dataPath": "keyboard_accessibility.keyboard_traps",
            "threshold": 0,
            "operator": "max",
            "weight": 4,
            "applicableDetectors": ["keyboard_navigation"],
            "recommendation": "Ensure keyboard focus can always be moved away from every component",
            "severity": "critical",
        },
        {
            "id": "wcag21_2_4_1",
            "name": "Bypass Blocks",
            "category": "Navigation",
            "standard": "wcag21",
            "level": "A",
            "type": "boolean",
            "dataPath": "navigation.skip_links_present",
            "expectedValue": True,
            "weight": 2,
            "applicableDetectors": ["keyboard_navigation", "wcag_compliance"],
            "recommendation": "Add a skip link that bypasses repeated navigation blocks",
        },
        {
            "id": "wcag21_2_4_7",
            "name": "Focus Visible",
            "category": "Focus",
            "standard": "wcag21",
            "level": "AA",
            "type": "conditional",
            "condition": {"type": "exists", "path": "focus_management.focusable_elements"},
            "weight": 3,
            "applicableDetectors": ["keyboard_navigation"],
            "recommendation": "Provide a visible focus indicator on every focusable element",
            "severity": "high",
            "rule": {
                "type": "boolean",
                "dataPath": "focus_management.visible_focus",
                "expectedValue": True,
            },
        },
        {
            "id": "wcag21_3_1_1",
            "name": "Language of Page",
            "category": "Language",
            "standard": "wcag21",
            "level": "A",
            "type": "boolean",
            "dataPath": "language.lang_attribute_present",
            "expectedValue": True,
            "weight": 2,
            "applicableDetectors": ["wcag_compliance", "screen_reader"],
            "recommendation": "Declare the page language with a lang attribute on the html element",
            "severity": "medium",
        },
        {
            "id": "wcag21_3_1_5",
            "name": "Reading Level",
            "category": "Readability",
            "standard": "wcag21",
            "level": "AAA",
            "type": "threshold",
            "dataPath": "readability.grade_level",
            "threshold": 9,
            "operator": "lte",
            "weight": 1,
            "applicableDetectors": ["cognitive_accessibility"],
            "recommendation": "Offer simplified content for text above lower secondary reading level",
        },
        {
            "id": "wcag21_3_3_2",
            "name": "Labels or Instructions",
            "category": "Forms",
            "standard": "wcag21",
            "level": "A",
            "type": "conditional",
            "condition": {"type": "exists", "path": "forms.total_fields"},
            "weight": 3,
            "applicableDetectors": ["wcag_compliance", "screen_reader"],
            "recommendation": "Associate a visible label or instruction with every form field",
            "severity": "high",
            "rule": {
                "type": "percentage",
                "dataPath": "forms.labeled_percentage",
                "threshold": 100,
                "operator": "gte",
            },
        },
        {
            "id": "wcag21_4_1_2",
            "name": "Name, Role, Value",
            "category": "ARIA",
            "standard": "wcag21",
            "level": "A",
            "type": "count",
            "dataPath": "aria.invalid_attributes",
            "threshold": 0,
            "operator": "max",
            "weight": 3,
            "applicableDetectors": ["aria_validation"],
            "recommendation": "Fix invalid ARIA attributes so assistive technology can read name, role and value",
        },
        {
            "id": "wcag21_4_1_2_landmarks",
            "name": "Landmark Coverage",
            "category": "ARIA",
            "standard": "wcag21",
            "level": "A",
            "type": "custom",
            "scorer": "ratio",
            "params": {
                "numerator_path": "landmarks.content_in_landmarks",
                "denominator_path": "landmarks.total_content_blocks",
                "minimum": 0.9,
            },
            "weight": 1,
            "applicableDetectors": ["aria_validation", "screen_reader"],
            "recommendation": "Place page content inside ARIA landmark regions",
        },
    ],
    "wcag22": [
        {
            "id": "wcag22_2_4_11",
            "name": "Focus Appearance",
            "category": "Focus",
            "standard": "wcag22",
            "level": "AA",
            "type": "boolean",
            "dataPath": "focus_management.visible_focus",
            "expectedValue": True,
            "weight": 3,
            "applicableDetectors": ["keyboard_navigation"],
            "recommendation": "Ensure focus indicators are clearly visible",
            "severity": "medium",
        },
        {
            "id": "wcag22_2_5_8",
            "name": "Target Size (Minimum)",
            "category": "Pointer",
            "standard": "wcag22",
            "level": "AA",
            "type": "threshold",
            "dataPath": "touch_targets.minimum_size_px",
            "threshold": 24,
            "operator": "gte",
            "weight": 2,
            "mobileWeight": 4,
            "applicableDetectors": ["wcag_compliance"],
            "recommendation": "Make pointer targets at least 24 by 24 CSS pixels",
        },
    ],
    "section508": [
        {
            "id": "section508_alt_text",
            "name": "Alternative Text",
            "category": "Images",
            "standard": "section508",
            "level": "Required",
            "type": "count",
            "dataPath": "images.missing_alt",
            "threshold": 0,
            "operator": "max",
            "weight": 3,
            "applicableDetectors": ["wcag_compliance"],
            "recommendation": "Provide alternative text for all images",
            "severity": "high",
        },
        {
            "id": "section508_captions",
            "name": "Synchronized Captions",
            "category": "Media",
            "standard": "section508",
            "level": "Required",
            "type": "conditional",
            "condition": {"type": "exists", "path": "media.video_count"},
            "weight": 2,
            "applicableDetectors": ["wcag_compliance"],
            "recommendation": "Provide synchronized captions for all prerecorded video",
            "severity": "high",
            "rule": {
                "type": "percentage",
                "dataPath": "media.captioned_percentage",
                "threshold": 100,
                "operator": "gte",
            },
        },
    ],
    "en301549": [
        {
            "id": "en301549_9_1_4_3",
            "name": "Contrast (Minimum)",
            "category": "Color",
            "standard": "en301549",
            "level": "AA",
            "type": "threshold",
            "dataPath": "color_contrast.minimum_ratio",
            "threshold": 4.5,
            "operator": "gte",
            "weight": 3,
            "applicableDetectors": ["color_contrast"],
            "recommendation": "Ensure text has sufficient contrast ratio",
            "severity": "high",
        },
        {
            "id": "en301549_9_2_1_1",
            "name": "Keyboard",
            "category": "Keyboard",
            "standard": "en301549",
            "level": "A",
            "type": "percentage",
            "dataPath": "keyboard_accessibility.accessible_percentage",
            "threshold": 100,
            "operator": "eq",
            "weight": 3,
            "ecommerceModifier": 0.9,
            "applicableDetectors": ["keyboard_navigation"],
            "recommendation": "Make all functionality available via keyboard",
            "severity": "critical",
        },
    ],
}


def load_catalogue(
    rulesets: Optional[Mapping[str, List[Mapping[str, Any]]]] = None,
) -> Dict[str, List[RuleDefinition]]:
    """
    Validate rulesets into typed rule definitions, grouped by standard.

    Raises RuleCatalogueError naming the offending rule on the first
    malformed entry, and on duplicate rule ids.
    """
    source = RULESETS if rulesets is None else rulesets
    catalogue: Dict[str, List[RuleDefinition]] = {}
    seen = set()

    for standard, records in source.items():
        rules = []
        for record in records:
            rule = parse_rule(record)
            if rule.id in seen:
                raise RuleCatalogueError(f"Duplicate rule id '{rule.id}' in standard '{standard}'")
            seen.add(rule.id)
            rules.append(rule)
        catalogue[standard] = rules

    return catalogue
