"""
Specialist orchestration for SRS authoring

The application root lives in srs_writer.agents.pipeline (SRSWriterPipeline).
"""
