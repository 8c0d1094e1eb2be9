# backend/app/services/question_types.py

"""
Catalog of question types.

Every type is described once, by a QuestionTypeDescriptor. The builder, the
projector and the collection session all look types up here instead of
branching on the type tag themselves.
"""

import uuid
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from app.schemas.form import Question, QuestionOption, QuestionType, ScaleLabels


CATEGORIES = ["Contact info", "Choice", "Rating & ranking", "Text & Video", "Other"]

# Fields whose presence depends on the question type
TYPE_SPECIFIC_FIELDS = (
    "options",
    "max_rating",
    "allow_multiple",
    "scale_max",
    "scale_labels",
    "max_file_size",
    "accepted_file_types",
)

MIN_OPTIONS = 2
LEGAL_TITLE = "I agree to the terms and conditions"
DEFAULT_FILE_TYPES = [".pdf", ".doc", ".docx", ".jpg", ".jpeg", ".png", ".webp"]


class AnswerShape(str, Enum):
    TEXT = "text"
    MULTI = "multi"
    NUMBER = "number"


def uid() -> str:
    return uuid.uuid4().hex[:7]


def default_options(count: int = MIN_OPTIONS) -> List[QuestionOption]:
    return [QuestionOption(id=uid(), label=f"Option {i + 1}") for i in range(count)]


def has_any_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return len(str(value).strip()) > 0


class QuestionTypeDescriptor:
    """
    Everything the system knows about one question type.

    Args:
        type (QuestionType): The type tag.
        label (str): Human readable name shown in the type picker.
        category (str): One of CATEGORIES.
        description (str): One-line hint shown under the label.
        input_kind (str): Which answer widget the respondent sees.
        answer_shape (AnswerShape): Shape of the stored answer value.
        fields (callable): Factory for the type-specific fields a fresh
            question of this type carries.
        affordances (dict): Editing controls offered to the author, with
            their allowed choices where the control is a picker.
        placeholder (str): Placeholder used when the author leaves it blank.
        multiline (bool): Whether Enter inserts a newline instead of advancing.
        default_title (str): Title used when a question of this type has none.
        has_value (callable): Required-field predicate.
    """

    def __init__(
        self,
        type: QuestionType,
        label: str,
        category: str,
        description: str,
        input_kind: str,
        answer_shape: AnswerShape = AnswerShape.TEXT,
        fields: Optional[Callable[[], Dict[str, Any]]] = None,
        affordances: Optional[Dict[str, Any]] = None,
        placeholder: Optional[str] = None,
        multiline: bool = False,
        default_title: str = "",
        has_value: Callable[[Any], bool] = has_any_value,
    ):
        self.type = type
        self.label = label
        self.category = category
        self.description = description
        self.input_kind = input_kind
        self.answer_shape = answer_shape
        self._fields = fields or (lambda: {})
        self.affordances = affordances or {}
        self.placeholder = placeholder
        self.multiline = multiline
        self.default_title = default_title
        self.has_value = has_value

    def default_fields(self) -> Dict[str, Any]:
        return self._fields()

    @property
    def field_names(self) -> List[str]:
        return list(self._fields().keys())

    @property
    def has_options(self) -> bool:
        return "options" in self.field_names

    def make_default(self) -> Question:
        return Question(
            id=uid(),
            type=self.type,
            title=self.default_title,
            required=False,
            **self.default_fields(),
        )


def _choice_fields(allow_multiple: bool) -> Callable[[], Dict[str, Any]]:
    def factory():
        fields = {"options": default_options()}
        if allow_multiple:
            fields["allow_multiple"] = False
        return fields
    return factory


def _scale_fields(scale_max: int, start: str, end: str) -> Callable[[], Dict[str, Any]]:
    return lambda: {"scale_max": scale_max, "scale_labels": ScaleLabels(start=start, end=end)}


TEXT_AFFORDANCES = {"placeholder": True}
CHOICE_AFFORDANCES = {"options": True}
MULTI_CHOICE_AFFORDANCES = {"options": True, "allow_multiple": True}

_DESCRIPTORS = [
    # Contact info
    QuestionTypeDescriptor(QuestionType.EMAIL, "Email", "Contact info", "Email address",
                           "email", affordances=TEXT_AFFORDANCES, placeholder="name@example.com"),
    QuestionTypeDescriptor(QuestionType.PHONE, "Phone Number", "Contact info", "Phone number input",
                           "tel", affordances=TEXT_AFFORDANCES, placeholder="+1 (555) 000-0000"),
    QuestionTypeDescriptor(QuestionType.ADDRESS, "Address", "Contact info", "Full address",
                           "textarea", affordances=TEXT_AFFORDANCES,
                           placeholder="Street, city, postal code, country"),
    QuestionTypeDescriptor(QuestionType.WEBSITE, "Website", "Contact info", "URL input",
                           "url", affordances=TEXT_AFFORDANCES, placeholder="https://"),
    # Choice
    QuestionTypeDescriptor(QuestionType.MULTIPLE_CHOICE, "Multiple Choice", "Choice", "Select from options",
                           "choice", AnswerShape.MULTI, fields=_choice_fields(True),
                           affordances=MULTI_CHOICE_AFFORDANCES),
    QuestionTypeDescriptor(QuestionType.DROPDOWN, "Dropdown", "Choice", "Dropdown select",
                           "dropdown", fields=_choice_fields(False), affordances=CHOICE_AFFORDANCES,
                           placeholder="Select an option..."),
    QuestionTypeDescriptor(QuestionType.PICTURE_CHOICE, "Picture Choice", "Choice", "Choose with images",
                           "picture_choice", AnswerShape.MULTI, fields=_choice_fields(True),
                           affordances={"options": True, "option_images": True, "allow_multiple": True}),
    QuestionTypeDescriptor(QuestionType.YES_NO, "Yes / No", "Choice", "Boolean choice", "yes_no"),
    QuestionTypeDescriptor(QuestionType.LEGAL, "Legal", "Choice", "Terms acceptance", "consent",
                           default_title=LEGAL_TITLE),
    QuestionTypeDescriptor(QuestionType.CHECKBOX, "Checkbox", "Choice", "Multi-select checks",
                           "choice", AnswerShape.MULTI, fields=_choice_fields(True),
                           affordances=MULTI_CHOICE_AFFORDANCES),
    # Rating & ranking
    QuestionTypeDescriptor(QuestionType.NPS, "Net Promoter Score", "Rating & ranking", "NPS 0–10 scale",
                           "scale", AnswerShape.NUMBER,
                           fields=_scale_fields(10, "Not likely", "Very likely"),
                           affordances={"scale_max": [10], "scale_labels": True}),
    QuestionTypeDescriptor(QuestionType.OPINION_SCALE, "Opinion Scale", "Rating & ranking", "Likert-style scale",
                           "scale", AnswerShape.NUMBER,
                           fields=_scale_fields(5, "Disagree", "Agree"),
                           affordances={"scale_max": [3, 5, 7, 10], "scale_labels": True}),
    QuestionTypeDescriptor(QuestionType.RATING, "Rating", "Rating & ranking", "1–5 or 1–10 scale",
                           "rating", AnswerShape.NUMBER, fields=lambda: {"max_rating": 5},
                           affordances={"max_rating": [3, 5, 7, 10]}),
    QuestionTypeDescriptor(QuestionType.RANKING, "Ranking", "Rating & ranking", "Order items by pref",
                           "ranking", AnswerShape.MULTI, fields=_choice_fields(False),
                           affordances=CHOICE_AFFORDANCES),
    # Text & Video
    QuestionTypeDescriptor(QuestionType.LONG_TEXT, "Long Text", "Text & Video", "Multi-line answer",
                           "textarea", affordances=TEXT_AFFORDANCES,
                           placeholder="Type your answer here...", multiline=True),
    QuestionTypeDescriptor(QuestionType.SHORT_TEXT, "Short Text", "Text & Video", "Single line answer",
                           "text", affordances=TEXT_AFFORDANCES, placeholder="Type your answer here..."),
    # Other
    QuestionTypeDescriptor(QuestionType.NUMBER, "Number", "Other", "Numeric input",
                           "number", AnswerShape.NUMBER, affordances=TEXT_AFFORDANCES,
                           placeholder="Enter a number..."),
    QuestionTypeDescriptor(QuestionType.DATE, "Date", "Other", "Date picker", "date"),
    QuestionTypeDescriptor(QuestionType.FILE_UPLOAD, "File Upload", "Other", "Attach files",
                           "file",
                           fields=lambda: {"max_file_size": 10, "accepted_file_types": list(DEFAULT_FILE_TYPES)},
                           affordances={"max_file_size": [2, 5, 10, 25], "accepted_file_types": True}),
]

REGISTRY: Dict[QuestionType, QuestionTypeDescriptor] = {d.type: d for d in _DESCRIPTORS}


def descriptor(question_type) -> QuestionTypeDescriptor:
    return REGISTRY[QuestionType(question_type)]


def defaults_for(question_type) -> Question:
    """Build a fresh question of the given type with all its required fields."""
    return descriptor(question_type).make_default()


def has_value(question: Question, value: Any) -> bool:
    """
    Decide whether an answer counts as answered for required-field purposes.

    Used by both the builder's required toggle and the respondent's advance
    gating.
    """
    return descriptor(question.type).has_value(value)


def label_for(question_type) -> str:
    return descriptor(question_type).label


def types_by_category() -> Dict[str, List[QuestionTypeDescriptor]]:
    grouped = {category: [] for category in CATEGORIES}
    for d in _DESCRIPTORS:
        grouped[d.category].append(d)
    return grouped


def value_matches_shape(question: Question, value: Any) -> bool:
    shape = descriptor(question.type).answer_shape
    if shape == AnswerShape.MULTI:
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    if shape == AnswerShape.NUMBER:
        if isinstance(value, bool):
            return False
        if isinstance(value, (int, float)):
            return True
        # Number inputs deliver their raw text
        try:
            float(str(value))
        except ValueError:
            return str(value).strip() == ""
        return True
    return isinstance(value, str)
