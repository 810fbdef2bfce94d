# Pydantic request/response models shared by repositories, services and routers
