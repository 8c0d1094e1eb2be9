# backend/app/services/templates.py

import logging
from typing import Dict, List, Optional

from app.core.errors import NotFoundError
from app.schemas.form import Form, FormSettings, FormStatus, Question, QuestionOption, QuestionType
from app.schemas.template import FormTemplate
from app.services.form_model import normalize
from app.services.question_types import uid

logger = logging.getLogger(__name__)

TEMPLATE_CATEGORIES = ["Contact", "Feedback", "Research", "HR", "Events", "Lead Gen"]


def _settings(thank_you_title: str, thank_you_message: str) -> FormSettings:
    return FormSettings(thank_you_title=thank_you_title, thank_you_message=thank_you_message)


def _q(number: int, type: QuestionType, title: str, required: bool = False,
       options: Optional[List[str]] = None, **fields) -> Question:
    if options is not None:
        fields["options"] = [QuestionOption(id=f"o{i}", label=label) for i, label in enumerate(options, 1)]
    return Question(id=f"q{number}", type=type, title=title, required=required, **fields)


T = QuestionType

FORM_TEMPLATES: List[FormTemplate] = [
    FormTemplate(
        id="tpl-contact",
        title="Contact Us",
        description="A clean contact form that captures name, email, and message, ready to drop into any website.",
        category="Contact",
        icon="✉️",
        estimated_time="1 min",
        tags=["contact", "support", "enquiry"],
        settings=_settings("Message sent!", "We'll get back to you within one business day."),
        questions=[
            _q(1, T.SHORT_TEXT, "Your full name", True, placeholder="Jane Smith"),
            _q(2, T.EMAIL, "Your email address", True, placeholder="jane@company.com"),
            _q(3, T.DROPDOWN, "What's this about?", True,
               ["General enquiry", "Sales", "Technical support", "Billing", "Press / Media"]),
            _q(4, T.LONG_TEXT, "How can we help?", True, placeholder="Describe your question or request..."),
        ],
    ),
    FormTemplate(
        id="tpl-nps",
        title="Net Promoter Score (NPS)",
        description="Industry-standard NPS survey to measure customer loyalty and likelihood to recommend.",
        category="Feedback",
        icon="📊",
        estimated_time="1 min",
        tags=["nps", "loyalty", "customer"],
        settings=_settings("Thanks for the feedback!", "Your score helps us build a better product for everyone."),
        questions=[
            _q(1, T.RATING, "How likely are you to recommend us to a friend or colleague?", True,
               description="0 = Not at all likely · 10 = Extremely likely", max_rating=10),
            _q(2, T.MULTIPLE_CHOICE, "What's the primary reason for your score?", False,
               ["Product quality", "Customer support", "Ease of use", "Value for money", "Something else"]),
            _q(3, T.LONG_TEXT, "What could we do to improve your experience?", placeholder="Tell us anything..."),
        ],
    ),
    FormTemplate(
        id="tpl-job",
        title="Job Application",
        description="Collect applicant details, experience level, portfolio links, and cover letter in one elegant form.",
        category="HR",
        icon="💼",
        estimated_time="5 min",
        tags=["hr", "hiring", "recruiting", "application"],
        settings=_settings("Application received!", "Our team will review your application within 5 business days."),
        questions=[
            _q(1, T.SHORT_TEXT, "Full name", True, placeholder="Your full name"),
            _q(2, T.EMAIL, "Email address", True, placeholder="you@email.com"),
            _q(3, T.SHORT_TEXT, "LinkedIn or portfolio URL", placeholder="https://linkedin.com/in/yourname"),
            _q(4, T.MULTIPLE_CHOICE, "Years of relevant experience", True,
               ["Less than 1 year", "1–3 years", "3–5 years", "5–10 years", "10+ years"]),
            _q(5, T.MULTIPLE_CHOICE, "What type of role are you applying for?", True,
               ["Full-time", "Part-time", "Contract / Freelance", "Internship"]),
            _q(6, T.LONG_TEXT, "Why do you want this role?", True,
               description="Tell us what excites you about this opportunity.", placeholder="Share your motivation..."),
            _q(7, T.YES_NO, "Are you eligible to work in the country of employment?", True),
        ],
    ),
    FormTemplate(
        id="tpl-rsvp",
        title="Event RSVP",
        description="Capture attendee RSVPs, dietary requirements, and session preferences for any event.",
        category="Events",
        icon="🎟️",
        estimated_time="2 min",
        tags=["event", "rsvp", "attendance"],
        settings=_settings("You're on the list!",
                           "We'll send a confirmation email with all the details closer to the event."),
        questions=[
            _q(1, T.SHORT_TEXT, "Full name", True, placeholder="Your name"),
            _q(2, T.EMAIL, "Email address", True, placeholder="you@email.com"),
            _q(3, T.YES_NO, "Will you be attending?", True),
            _q(4, T.NUMBER, "How many guests are you bringing?", description="Including yourself", placeholder="1"),
            _q(5, T.MULTIPLE_CHOICE, "Dietary requirements", False,
               ["None", "Vegetarian", "Vegan", "Gluten-free", "Halal", "Kosher"], allow_multiple=True),
            _q(6, T.LONG_TEXT, "Anything else we should know?",
               placeholder="Accessibility needs, questions, notes..."),
        ],
    ),
    FormTemplate(
        id="tpl-product-feedback",
        title="Product Feedback",
        description="Structured feedback on your product's usability, features, and overall satisfaction.",
        category="Feedback",
        icon="🚀",
        estimated_time="3 min",
        tags=["product", "feedback", "ux", "survey"],
        settings=_settings("Feedback received!", "Every response shapes our roadmap. Thank you!"),
        questions=[
            _q(1, T.RATING, "How easy is it to use our product?", True,
               description="1 = Very difficult · 5 = Very easy", max_rating=5),
            _q(2, T.RATING, "How satisfied are you overall?", True, max_rating=5),
            _q(3, T.MULTIPLE_CHOICE, "Which features do you use most?", False,
               ["Dashboard / Analytics", "Form builder", "Integrations", "AI suggestions", "Custom branding"],
               allow_multiple=True),
            _q(4, T.LONG_TEXT, "What's your biggest pain point?", placeholder="Be honest, it helps!"),
            _q(5, T.YES_NO, "Would you recommend this product to others?", True),
        ],
    ),
    FormTemplate(
        id="tpl-onboarding",
        title="Customer Onboarding",
        description="Understand your new customers' goals, use cases, and technical setup on day one.",
        category="Lead Gen",
        icon="👋",
        estimated_time="3 min",
        tags=["onboarding", "welcome", "setup", "saas"],
        settings=_settings("Welcome aboard!",
                           "Your account is being set up. You'll hear from your onboarding manager soon."),
        questions=[
            _q(1, T.SHORT_TEXT, "What's your name?", True, placeholder="First name"),
            _q(2, T.SHORT_TEXT, "What's the name of your company?", placeholder="Acme Inc."),
            _q(3, T.MULTIPLE_CHOICE, "What's your primary goal?", True,
               ["Collect customer feedback", "Generate leads", "Run surveys & research",
                "Streamline HR processes", "Something else"]),
            _q(4, T.MULTIPLE_CHOICE, "How large is your team?", False,
               ["Just me", "2–10", "11–50", "51–200", "200+"]),
            _q(5, T.YES_NO, "Have you used a form tool before?"),
        ],
    ),
    FormTemplate(
        id="tpl-employee-satisfaction",
        title="Employee Satisfaction",
        description="Pulse survey to gauge team morale, wellbeing, and workplace satisfaction.",
        category="HR",
        icon="🏢",
        estimated_time="4 min",
        tags=["hr", "employee", "culture", "pulse", "morale"],
        settings=_settings("Thanks for sharing!", "Your responses are anonymous and help us improve our workplace."),
        questions=[
            _q(1, T.RATING, "How happy are you at work right now?", True,
               description="1 = Very unhappy · 5 = Very happy", max_rating=5),
            _q(2, T.MULTIPLE_CHOICE, "Which area could be improved the most?", False,
               ["Team communication", "Work-life balance", "Career growth", "Management & leadership",
                "Tools & processes", "Compensation & benefits"]),
            _q(3, T.YES_NO, "Do you feel recognised for your contributions?", True),
            _q(4, T.RATING, "How would you rate the overall company culture?", True, max_rating=5),
            _q(5, T.LONG_TEXT, "What's one thing we should start, stop, or continue doing?",
               placeholder="Your honest thoughts..."),
        ],
    ),
    FormTemplate(
        id="tpl-lead-gen",
        title="Lead Generation",
        description="Qualify inbound leads by capturing their details, budget, and timeline before a sales call.",
        category="Lead Gen",
        icon="🎯",
        estimated_time="3 min",
        tags=["leads", "sales", "qualify", "pipeline"],
        settings=_settings("Got it, thanks!", "A member of our team will reach out within 24 hours."),
        questions=[
            _q(1, T.SHORT_TEXT, "Your full name", True, placeholder="Jane Smith"),
            _q(2, T.EMAIL, "Work email", True, placeholder="jane@company.com"),
            _q(3, T.SHORT_TEXT, "Company name", True, placeholder="Acme Corp"),
            _q(4, T.MULTIPLE_CHOICE, "What's your estimated monthly budget?", False,
               ["Under £500", "£500 – £2,000", "£2,000 – £10,000", "£10,000+", "Not sure yet"]),
            _q(5, T.MULTIPLE_CHOICE, "When are you looking to get started?", True,
               ["Immediately", "Within a month", "1–3 months", "Just exploring"]),
            _q(6, T.LONG_TEXT, "Tell us about your project", placeholder="What are you trying to achieve?"),
        ],
    ),
    FormTemplate(
        id="tpl-market-research",
        title="Market Research Survey",
        description="Understand your target audience's behaviours, preferences, and pain points.",
        category="Research",
        icon="🔍",
        estimated_time="5 min",
        tags=["research", "market", "audience", "insights"],
        settings=_settings("Survey complete!", "Your insights are incredibly valuable. Thank you for your time."),
        questions=[
            _q(1, T.MULTIPLE_CHOICE, "Which best describes you?", True,
               ["Freelancer / Solopreneur", "Startup (< 10 employees)", "SME (10–200 employees)",
                "Enterprise (200+ employees)", "Non-profit / Education"]),
            _q(2, T.MULTIPLE_CHOICE, "Which tools do you currently use to collect data?", False,
               ["Google Forms", "Typeform", "SurveyMonkey", "Airtable", "None", "Other"], allow_multiple=True),
            _q(3, T.RATING, "How satisfied are you with your current tool?", True, max_rating=5),
            _q(4, T.LONG_TEXT, "What's the biggest frustration with your current solution?",
               placeholder="Be specific..."),
            _q(5, T.MULTIPLE_CHOICE, "Which features matter most to you?", False,
               ["Beautiful design", "AI capabilities", "Analytics & reporting", "Integrations", "Low cost",
                "Ease of use"], allow_multiple=True),
        ],
    ),
    FormTemplate(
        id="tpl-post-event",
        title="Post-Event Feedback",
        description="Gather attendee ratings and insights right after an event to improve future ones.",
        category="Events",
        icon="🎤",
        estimated_time="2 min",
        tags=["event", "feedback", "post-event", "conference"],
        settings=_settings("Thanks for attending!", "Your feedback makes our next event even better. See you there!"),
        questions=[
            _q(1, T.RATING, "How would you rate the event overall?", True,
               description="1 = Poor · 5 = Outstanding", max_rating=5),
            _q(2, T.RATING, "How would you rate the content and speakers?", True, max_rating=5),
            _q(3, T.MULTIPLE_CHOICE, "Which session did you find most valuable?", False,
               ["Opening keynote", "Workshop sessions", "Panel discussion", "Networking breaks", "Closing remarks"]),
            _q(4, T.YES_NO, "Would you attend this event again next year?", True),
            _q(5, T.LONG_TEXT, "What should we change or improve?", placeholder="Your honest feedback..."),
        ],
    ),
]

_BY_ID: Dict[str, FormTemplate] = {t.id: t for t in FORM_TEMPLATES}


def list_templates(category: Optional[str] = None) -> List[FormTemplate]:
    if category is None:
        return list(FORM_TEMPLATES)
    return [t for t in FORM_TEMPLATES if t.category == category]


def get_template(template_id: str) -> FormTemplate:
    template = _BY_ID.get(template_id)
    if template is None:
        raise NotFoundError("Template not found")
    return template


def _fresh_copy(question: Question) -> Question:
    options = None
    if question.options is not None:
        options = [o.model_copy(update={"id": uid()}) for o in question.options]
    return normalize(question.model_copy(update={"id": uid(), "options": options}, deep=True))


def form_from_template(template_id: str, form_id: Optional[str] = None) -> Form:
    """
    Build a new draft form from a template.

    Question and option ids are regenerated so two forms made from the same
    template never share ids.
    """
    template = get_template(template_id)
    logger.info(f"Creating form from template {template_id}")
    return Form(
        id=form_id or uid(),
        title=template.title,
        description=template.description,
        questions=[_fresh_copy(q) for q in template.questions],
        settings=template.settings.model_copy(deep=True),
        status=FormStatus.DRAFT,
    )
