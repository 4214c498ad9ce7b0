from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, Response, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from trafficfines.api.bearer import bearer_admin
from trafficfines.src.db import TrafficRule, sessionMaker
from trafficfines.src import crud, exceptions, validators, getters
from trafficfines.src.loggers import logEvent
from trafficfines.src.functions import fuseExceptionResponses
from trafficfines.src.urls import URL_TRAFFIC_RULE

route_admin = APIRouter()


## Output Schema
class TrafficRuleSchema(BaseModel):
    id: int
    rule_name: str
    description: Optional[str]
    fine_amount: Decimal


## Input Forms
class CreateForm(BaseModel):
    rule_name: str = Field(Form(min_length=1, max_length=128))
    description: str | None = Field(Form(max_length=1024, default=None))
    fine_amount: Decimal = Field(Form(gt=0))


class UpdateForm(BaseModel):
    id: int = Field(Form())
    rule_name: str | None = Field(Form(min_length=1, max_length=128, default=None))
    description: str | None = Field(Form(max_length=1024, default=None))
    fine_amount: Decimal | None = Field(Form(gt=0, default=None))


class DeleteForm(BaseModel):
    id: int = Field(Form())


## API endpoints [Admin]
@route_admin.post(
    URL_TRAFFIC_RULE,
    tags=["Traffic Rule"],
    response_model=TrafficRuleSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Defines a new traffic rule with its fine. The fine must be positive.
    """,
)
async def create_rule(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)

        rule = crud.createRule(
            session,
            rule_name=fParam.rule_name,
            fine_amount=fParam.fine_amount,
            description=fParam.description,
        )

        ruleData = jsonable_encoder(rule)
        logEvent(token, request_info, ruleData)
        return ruleData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.patch(
    URL_TRAFFIC_RULE,
    tags=["Traffic Rule"],
    response_model=TrafficRuleSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidIdentifier(),
        ]
    ),
    description="""
    Updates a traffic rule. Only the provided fields are changed.
    A new fine applies to the recorded violations of the rule as well,
    since fines are always read through the rule.
    """,
)
async def update_rule(
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)

        rule = crud.updateRule(
            session,
            fParam.id,
            rule_name=fParam.rule_name,
            description=fParam.description,
            fine_amount=fParam.fine_amount,
        )

        ruleData = jsonable_encoder(rule)
        logEvent(token, request_info, ruleData)
        return ruleData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.delete(
    URL_TRAFFIC_RULE,
    tags=["Traffic Rule"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.DataInUse(TrafficRule),
        ]
    ),
    description="""
    Deletes a traffic rule.
    A rule that still has violations recorded against it cannot be deleted.
    If the rule does not exist, the operation is silently ignored.
    """,
)
async def delete_rule(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)

        rule = crud.getRule(session, fParam.id)
        if rule is None:
            return Response(status_code=status.HTTP_204_NO_CONTENT)
        ruleData = jsonable_encoder(rule)
        crud.deleteRule(session, rule.id)

        logEvent(token, request_info, ruleData)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_TRAFFIC_RULE,
    tags=["Traffic Rule"],
    response_model=List[TrafficRuleSchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Lists every traffic rule.
    """,
)
async def fetch_rules(bearer=Depends(bearer_admin)):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)
        return crud.listRules(session)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
