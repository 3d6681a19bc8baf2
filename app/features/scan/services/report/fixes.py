"""
Fix instructions and owners for axe rules.
"""
from typing import Dict, Optional

from app.features.scan.schemas.report import FixInstruction

DEFAULT_OWNER = "Developer"

FIX_INSTRUCTIONS: Dict[str, FixInstruction] = {
    "button-name": FixInstruction(
        title="Buttons must have discernible text",
        how_to_fix="Add accessible text to the button using textContent, aria-label, or aria-labelledby.",
        what_improves="will have accessible names, allowing screen reader users to understand their purpose.",
        owner="Developer",
    ),
    "color-contrast": FixInstruction(
        title="Ensure sufficient color contrast",
        how_to_fix="Increase color contrast ratio to at least 4.5:1 for normal text or 3:1 for large text (18pt+).",
        what_improves="will meet the minimum contrast ratio, making text readable for users with low vision.",
        owner="Designer",
    ),
    "image-alt": FixInstruction(
        title="Images must have alternate text",
        how_to_fix='Add meaningful alt text to all images. For decorative images, use alt="".',
        what_improves="will have descriptive text alternatives, allowing screen reader users to understand image content.",
        owner="Content",
    ),
    "link-name": FixInstruction(
        title="Links must have discernible text",
        how_to_fix='Ensure links have descriptive text. Avoid "click here" or empty links. Use aria-label if needed.',
        what_improves="will have descriptive text, helping users understand where they lead.",
        owner="Developer",
    ),
    "label": FixInstruction(
        title="Form elements must have labels",
        how_to_fix='Associate each form input with a <label> element using the "for" attribute, or use aria-label.',
        what_improves="will be properly labeled, allowing screen reader users to understand form fields.",
        owner="Developer",
    ),
    "html-has-lang": FixInstruction(
        title="HTML element must have a lang attribute",
        how_to_fix='Add lang attribute to the <html> element (e.g., <html lang="en">).',
        what_improves="Screen readers will use the correct language pronunciation.",
        owner="Developer",
    ),
    "page-has-heading-one": FixInstruction(
        title="Page must contain a level-one heading",
        how_to_fix="Add an <h1> element to the page that describes the main content.",
        what_improves="Page structure will be clearer for screen reader users navigating by headings.",
        owner="Developer",
    ),
    "landmark-one-main": FixInstruction(
        title="Document must have a main landmark",
        how_to_fix='Add a <main> element or role="main" to wrap the primary content.',
        what_improves="Screen reader users can quickly navigate to the main content.",
        owner="Developer",
    ),
    "region": FixInstruction(
        title="Page content must be contained by landmarks",
        how_to_fix="Wrap all page content in semantic HTML5 elements (header, nav, main, aside, footer) or ARIA landmarks.",
        what_improves="Screen reader users can efficiently navigate through page sections.",
        owner="Developer",
    ),
    "aria-required-attr": FixInstruction(
        title="ARIA roles must have required attributes",
        how_to_fix="Add all required ARIA attributes for the specified role. Check ARIA specification for details.",
        what_improves="ARIA widgets will function correctly for assistive technologies.",
        owner="Developer",
    ),
    "aria-valid-attr-value": FixInstruction(
        title="ARIA attributes must have valid values",
        how_to_fix='Ensure ARIA attribute values match the expected format (e.g., aria-expanded="true" not "yes").',
        what_improves="ARIA attributes will be recognized and interpreted correctly by assistive technologies.",
        owner="Developer",
    ),
    "duplicate-id": FixInstruction(
        title="IDs must be unique",
        how_to_fix="Ensure each id attribute value is used only once per page.",
        what_improves="ARIA references and form labels will work correctly.",
        owner="Developer",
    ),
    "heading-order": FixInstruction(
        title="Heading levels should increase by one",
        how_to_fix="Use headings in sequential order (h1, h2, h3) without skipping levels.",
        what_improves="Document structure will be logical and easier to navigate.",
        owner="Developer",
    ),
    "landmark-unique": FixInstruction(
        title="Landmarks must be unique",
        how_to_fix="Give each landmark a unique accessible name using aria-label or aria-labelledby.",
        what_improves="Screen reader users can distinguish between multiple landmarks of the same type.",
        owner="Developer",
    ),
    "list": FixInstruction(
        title="Lists must contain only list items",
        how_to_fix="Ensure <ul> and <ol> elements only contain <li> elements as direct children.",
        what_improves="Lists will be properly announced by screen readers.",
        owner="Developer",
    ),
    "listitem": FixInstruction(
        title="List items must be contained in lists",
        how_to_fix="Ensure <li> elements are only used inside <ul>, <ol>, or <menu> elements.",
        what_improves="List structure will be properly announced by screen readers.",
        owner="Developer",
    ),
    "meta-viewport": FixInstruction(
        title="Viewport meta tag should allow scaling",
        how_to_fix="Remove user-scalable=no or maximum-scale values less than 5 from viewport meta tag.",
        what_improves="Users can zoom the page to increase text size.",
        owner="Developer",
    ),
    "tabindex": FixInstruction(
        title="Avoid positive tabindex values",
        how_to_fix="Remove tabindex values greater than 0. Use 0 or -1 instead.",
        what_improves="Keyboard navigation order will match visual order.",
        owner="Developer",
    ),
    "aria-hidden-focus": FixInstruction(
        title="Focusable elements must not be hidden",
        how_to_fix='Remove aria-hidden="true" from focusable elements or make them non-focusable.',
        what_improves="Screen reader users won't encounter hidden focusable elements.",
        owner="Developer",
    ),
    "frame-title": FixInstruction(
        title="Frames must have a title",
        how_to_fix="Add a title attribute to <iframe> elements that describes the frame content.",
        what_improves="Screen reader users will understand what each frame contains.",
        owner="Developer",
    ),
    "skip-link": FixInstruction(
        title="Skip link must have a valid target",
        how_to_fix=(
            "Ensure the skip link's href points to a valid focusable target (for example, id=\"main\" on the "
            "main content container). The target element should have tabindex=\"-1\" if it's not naturally focusable."
        ),
        what_improves="Keyboard users can efficiently bypass repetitive navigation and jump directly to main content.",
        owner="Developer",
    ),
    "bypass": FixInstruction(
        title="Page must have a skip link",
        how_to_fix=(
            'Add a skip link as the first interactive element: <a href="#main">Skip to main content</a>. '
            'Ensure the target element has id="main" and tabindex="-1" if needed.'
        ),
        what_improves="Keyboard users can efficiently bypass repetitive navigation and jump directly to main content.",
        owner="Developer",
    ),
}


def get_fix_instruction(rule_id: str) -> Optional[FixInstruction]:
    return FIX_INSTRUCTIONS.get(rule_id)


def get_owner(rule_id: str) -> str:
    instruction = FIX_INSTRUCTIONS.get(rule_id)
    return instruction.owner if instruction else DEFAULT_OWNER
