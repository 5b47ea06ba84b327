"""
Configuration data models with validation.
"""

from typing import Optional
from pydantic import BaseModel, Field, validator


class IndexConfiguration(BaseModel):
    """Location and merge policy of the installed-plugin index."""
    root_dir: Optional[str] = None
    module_precedence: str = Field(default="modules", pattern="^(modules|plugins)$")


class PackagingConfiguration(BaseModel):
    """Where the plugin artifact is assembled and archived."""
    output_dir: str = Field(default="target/plugin/plugin", min_length=1)
    zip_file: Optional[str] = None
    library_base_dir: str = Field(default="lib", min_length=1)
    assemble_libraries: bool = False

    @validator('library_base_dir')
    def validate_library_base_dir(cls, v):
        """Library directory must stay inside the output tree."""
        if v.startswith('/') or '..' in v.split('/'):
            raise ValueError("library_base_dir must be a relative path inside the output directory")
        return v.strip('/')


class RepositoryConfiguration(BaseModel):
    """Plugin repository used to build download URLs."""
    base_url: str = "https://plugins.jetbrains.com"

    @validator('base_url')
    def validate_base_url(cls, v):
        """Validate repository URL scheme."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError(f"Invalid repository URL: {v}")
        return v.rstrip('/')


class LoggingConfiguration(BaseModel):
    """Logging system configuration with validation."""
    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="text", pattern="^(json|text)$")
    output: str = Field(default="console", pattern="^(console|file|both)$")
    file_path: Optional[str] = None

    @validator('file_path', always=True)
    def validate_file_path(cls, v, values):
        """Validate file path when file output is used."""
        if values.get('output') in ['file', 'both'] and not v:
            raise ValueError("file_path is required when output is 'file' or 'both'")
        return v


class PackagerConfiguration(BaseModel):
    """Top-level configuration with nested validation."""
    index: IndexConfiguration = Field(default_factory=IndexConfiguration)
    packaging: PackagingConfiguration = Field(default_factory=PackagingConfiguration)
    repository: RepositoryConfiguration = Field(default_factory=RepositoryConfiguration)
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)
