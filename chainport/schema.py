from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any


class ChainStep(BaseModel):
    id: int
    instructions: str
    requiredOutput: str = ""
    inputStatement: str = Field(
        "",
        description="Seed text for design-time testing of a single step. Ignored when a compiled chain runs.",
    )


class ChainData(BaseModel):
    steps: List[ChainStep] = Field(default_factory=list)


class Owner(BaseModel):
    uid: str = "anonymous"
    email: Optional[str] = None
    displayName: Optional[str] = None


class ChainDefinition(BaseModel):
    id: str
    steps: List[ChainStep]
    credential: str = ""
    ownerId: str
    ownerEmail: Optional[str] = None
    userName: str
    createdAt: str
    endpointUrl: str
    portNumber: int

    def public_view(self) -> Dict[str, Any]:
        """Chain data without the stored credential."""
        data = self.model_dump(exclude={"credential"})
        data["hasApiKey"] = bool(self.credential)
        return data


class CreatedChain(BaseModel):
    chain: ChainDefinition
    warning: Optional[str] = None


class StepResult(BaseModel):
    stepId: int
    stepInstructions: str
    input: str
    result: str


class ExecutionResult(BaseModel):
    success: bool
    finalResult: Optional[str] = None
    steps: List[StepResult] = Field(default_factory=list)
    error: Optional[str] = None
    errorKind: Optional[str] = None
    statusCode: Optional[int] = None
    failedStepId: Optional[int] = None

    @property
    def stepResults(self) -> List[str]:
        return [step.result for step in self.steps]


# Request / response bodies

class StepTestRequest(BaseModel):
    inputStatement: str = ""
    instructions: str = ""
    requiredOutput: str = ""
    apiKey: Optional[str] = None
    model: Optional[str] = None


class StepTestResponse(BaseModel):
    result: str


class CreateEndpointRequest(BaseModel):
    chainData: Optional[ChainData] = None
    apiKey: Optional[str] = None
    userInfo: Optional[Owner] = None


class CreateEndpointResponse(BaseModel):
    id: str
    endpointUrl: str
    portNumber: int
    userName: str
    message: str
    warning: Optional[str] = None


class ProcessRequest(BaseModel):
    input: Optional[str] = None


class ProcessResponse(BaseModel):
    success: bool
    finalResult: str
    steps: List[StepResult]
    stepResults: List[str]
    chainId: Optional[str] = None


class UserChainsRequest(BaseModel):
    userId: Optional[str] = None
