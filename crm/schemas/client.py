from pydantic import BaseModel, ConfigDict, Field


class ClientBase(BaseModel):
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    address: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=255)
    zip: str | None = Field(default=None, max_length=50)
    company: str | None = Field(default=None, max_length=255)


class ClientCreate(ClientBase):
    pass


class ClientUpdate(ClientBase):
    """Full replacement: omitted fields are stored as null."""


class ClientRead(ClientBase):
    id: int

    model_config = ConfigDict(from_attributes=True)
