"""Control state reconciliation engine and its components."""

from .classifier import Classification, ClassificationTable, Confidence, ControlClassifier, ControlRole
from .engine import CyclePlan, EngineConfig, ReconciliationEngine
from .enumerator import ControlNode, Rect, Snapshot, WindowTreeEnumerator
from .executor import ExecutorConfig, SafeExecutor
from .matcher import Ambiguous, Matcher, MatchResult, Resolved, Unresolved
from .outcome import Outcome, OutcomeRecord, OutcomeReport
from .plan import ActionKind, ActionPlan, ToggleAction
from .reconciler import Reconciler
from .safety import DEFAULT_SAFETY_RULES, SafetyExclusionList, SafetyRule
from .template import Template, TemplateEntry, load_template, parse_template
