from pydantic import BaseModel, Field


class AnalyzeCvRequest(BaseModel):
    cv_file: str = Field(..., alias="cvFile", min_length=1, description="CV file content, base64-encoded")
    filename: str = Field(..., min_length=1, max_length=255)

    class Config:
        populate_by_name = True


class CvExtraction(BaseModel):
    """Profile fields extracted from a CV by the model. Missing values are empty strings."""
    first_name: str = ""
    last_name: str = ""
    skills: str = ""
    experience: str = ""
    education: str = ""
    phone: str = ""


class ProfileOut(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: str | None
    role: str
    skills: str | None
    experience: str | None
    education: str | None

    class Config:
        from_attributes = True


class AnalyzeCvData(BaseModel):
    extracted_data: CvExtraction
    profile: ProfileOut
    message: str = "CV analyzed successfully and profile auto-filled"


class AnalyzeCvResponse(BaseModel):
    data: AnalyzeCvData
