from multimodal.summarization.client_base import BaseTextGenerator
from multimodal.summarization.factory import SummarizerFactory
from multimodal.summarization.summarizer import Summarizer

__all__ = ["BaseTextGenerator", "Summarizer", "SummarizerFactory"]
