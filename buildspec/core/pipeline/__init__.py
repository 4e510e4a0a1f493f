from .runner import STAGES, BuildOutput, BuildPipeline, stage

__all__ = ["STAGES", "BuildOutput", "BuildPipeline", "stage"]
