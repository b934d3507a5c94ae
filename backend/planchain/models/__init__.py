"""Data model for floor-plan chaining."""
from planchain.models.base import ResolutionFault, ResolutionFaultEnum
from planchain.models.observation import GroupKey, Observation
from planchain.models.label_sequence import LabelSequence
from planchain.models.chain import ChainCandidate, FullChain, SelectedChain
from planchain.models.label_mapping import LabelMapping
