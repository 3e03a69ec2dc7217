"""Trainers, shard planning and run pipelines."""

from .adaline import TrainAdaline
from .loop import TrainingHistory, train
from .trainer import MultiTrainer, TrainerState
from .worker import BatchGradientWorker, CPUGradientWorker
from .workload import Shard, Workload, determine_workload

__all__ = [
    "BatchGradientWorker",
    "CPUGradientWorker",
    "MultiTrainer",
    "Shard",
    "TrainAdaline",
    "TrainerState",
    "TrainingHistory",
    "Workload",
    "determine_workload",
    "train",
]
