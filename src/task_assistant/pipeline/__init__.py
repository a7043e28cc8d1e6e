"""
Message ingestion pipeline components.
"""

from .extractor import TaskExtractor, TaskInfo
from .intent import IntentClassifier, is_confident
from .mention_tracker import MentionTracker
from .pipeline import AssistantPipeline, IngestionResult
from .answerer import QuestionAnswerer
from .priority import PriorityResolver
from .reminder_request import ReminderRequest, ReminderRequestParser
from .summarizer import ThreadSummarizer
from .task_request import TaskRequestAnalyzer

__all__ = [
    'AssistantPipeline',
    'IngestionResult',
    'IntentClassifier',
    'is_confident',
    'TaskExtractor',
    'TaskInfo',
    'PriorityResolver',
    'TaskRequestAnalyzer',
    'MentionTracker',
    'QuestionAnswerer',
    'ReminderRequest',
    'ReminderRequestParser',
    'ThreadSummarizer',
]
