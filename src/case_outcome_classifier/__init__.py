"""Case Outcome Classifier -- Bernoulli Naive Bayes guilt labeling for legal outcome narratives."""

__version__ = "0.1.0"

from .classifier import (
    BernoulliNaiveBayes,
    classify,
    classify_corpus,
    log_scores,
    score_document,
)
from .config import PipelineConfig
from .dataset import (
    DatasetSchema,
    apply_predictions,
    load_records,
    save_records,
    split_labeled,
    to_documents,
)
from .errors import (
    CaseOutcomeError,
    EmptyClassError,
    EmptyVocabularyError,
    InvalidLabelError,
    MalformedRecordError,
)
from .estimator import ClassStatistics, estimate
from .evaluation import (
    ClassificationMetrics,
    EvaluationResult,
    PredictionResult,
    compute_metrics,
    cross_validate,
    evaluate,
    predict_unlabeled,
    stratified_k_fold,
)
from .models import ClassificationResult, Document, RecordFailure, Verdict
from .preprocessing import CleanedCorpus, TextNormalizer, normalize, stopwords_for, tokenize
from .vocabulary import Vocabulary, build_vocabulary

__all__ = [
    # Models
    "Verdict",
    "Document",
    "ClassificationResult",
    "RecordFailure",
    # Errors
    "CaseOutcomeError",
    "InvalidLabelError",
    "EmptyClassError",
    "EmptyVocabularyError",
    "MalformedRecordError",
    # Preprocessing
    "TextNormalizer",
    "CleanedCorpus",
    "normalize",
    "tokenize",
    "stopwords_for",
    # Vocabulary and estimation
    "Vocabulary",
    "build_vocabulary",
    "ClassStatistics",
    "estimate",
    # Classification
    "BernoulliNaiveBayes",
    "score_document",
    "log_scores",
    "classify",
    "classify_corpus",
    # Harness
    "PipelineConfig",
    "DatasetSchema",
    "to_documents",
    "split_labeled",
    "apply_predictions",
    "load_records",
    "save_records",
    "evaluate",
    "predict_unlabeled",
    "cross_validate",
    "stratified_k_fold",
    "compute_metrics",
    "ClassificationMetrics",
    "EvaluationResult",
    "PredictionResult",
]
