from flask import Flask, jsonify, abort, request
from flask_cors import CORS
from flasgger import Swagger
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import logging
from config import Settings, load_settings
from models.base import Base
from models.users import User
from engine.errors import DraftError, BadRequest
from engine.notifier import LogNotifier, WebhookNotifier
from engine import activation, autopick, bans, leagues, picks, teams
from engine.deadlines import require_deadlines
from engine.repository import get_draft, get_race

logger = logging.getLogger('pickdriver')

MUTATING_METHODS = ("POST", "PUT", "DELETE")


def current_user_id(session):
    """The acting user, as asserted by the authenticating proxy in ``X-User-Id``."""
    raw = request.headers.get("X-User-Id")
    if raw is None or not raw.isdigit():
        abort(401, description="Missing or invalid user identity")
    user = session.query(User).filter(User.id == int(raw)).first()
    if user is None:
        abort(401, description="Unknown user")
    return user.id


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    return data


def require_int(data, key, default=None):
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise BadRequest(f"'{key}' must be an integer")
    return value


def require_bool(data, key, default=False):
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise BadRequest(f"'{key}' must be true or false")
    return value


def require_int_list(data, key):
    values = data.get(key)
    if not isinstance(values, list) or any(isinstance(v, bool) or not isinstance(v, int) for v in values):
        raise BadRequest(f"'{key}' must be a list of integers")
    return values


def create_app(settings: Settings = None, db_engine=None):
    settings = settings or load_settings()

    app = Flask(__name__)
    Swagger(app)
    CORS(app)

    # Configure the database
    if db_engine is None:
        db_engine = create_engine(settings.database_url)
    Base.metadata.create_all(db_engine)
    Session = sessionmaker(bind=db_engine)

    if settings.draft_webhook_url:
        notifier = WebhookNotifier(settings.draft_webhook_url)
    else:
        notifier = LogNotifier()
    logger.info(f"Turn notifications via {type(notifier).__name__}")

    app.config["SETTINGS"] = settings
    app.config["SESSION_FACTORY"] = Session

    @app.errorhandler(DraftError)
    def handle_draft_error(error):
        return jsonify({"error": error.reason}), error.status_code

    @app.errorhandler(401)
    @app.errorhandler(404)
    def handle_http_error(error):
        return jsonify({"error": error.description}), error.code

    @app.before_request
    def maintenance_mode():
        if settings.maintenance_mode and request.method in MUTATING_METHODS:
            return jsonify({"error": "Service is under maintenance"}), 503

    @app.route('/api/leagues', methods=['POST'])
    def create_league():
        """
        Create a league owned by the calling user.
        ---
        tags:
          - Leagues
        parameters:
          - name: body
            in: body
            required: true
            schema:
              properties:
                name:
                  type: string
                  example: "Sunday Paddock"
                max_players:
                  type: integer
                  example: 6
                teams_enabled:
                  type: boolean
                bans_enabled:
                  type: boolean
                mirror_picks_enabled:
                  type: boolean
        responses:
          201:
            description: The created league with its invite code.
          400:
            description: Invalid input or no active season.
        """
        data = json_body()
        name = data.get("name", "")
        if not isinstance(name, str):
            raise BadRequest("'name' must be a string")
        with Session() as session:
            userId = current_user_id(session)
            league = leagues.create_league(session, userId, name,
                                           max_players=require_int(data, "max_players", 20),
                                           teams_enabled=require_bool(data, "teams_enabled"),
                                           bans_enabled=require_bool(data, "bans_enabled"),
                                           mirror_picks_enabled=require_bool(data, "mirror_picks_enabled"))
            return jsonify({
                "id": league.id,
                "name": league.name,
                "code": league.code,
                "status": league.status,
                "owner_id": league.owner_id,
                "max_players": league.max_players,
                "teams_enabled": league.teams_enabled,
                "bans_enabled": league.bans_enabled,
                "mirror_picks_enabled": league.mirror_picks_enabled,
            }), 201

    @app.route('/api/leagues/join', methods=['POST'])
    def join_league():
        """
        Join a pending league with its invite code.
        ---
        tags:
          - Leagues
        responses:
          200:
            description: Joined.
          404:
            description: Unknown code.
          409:
            description: Already a member.
        """
        data = json_body()
        with Session() as session:
            userId = current_user_id(session)
            league = leagues.join_league(session, userId, str(data.get("code", "")))
            return jsonify({"id": league.id, "name": league.name, "status": league.status})

    @app.route('/api/leagues/<int:leagueId>/pick-order', methods=['PUT'])
    def set_manual_pick_order(leagueId):
        """
        Fix the league's base pick order (owner only, before the draft starts).
        ---
        tags:
          - Leagues
        parameters:
          - name: leagueId
            in: path
            type: integer
            required: true
          - name: body
            in: body
            required: true
            schema:
              properties:
                user_ids:
                  type: array
                  items:
                    type: integer
        responses:
          200:
            description: The stored order.
        """
        data = json_body()
        with Session() as session:
            userId = current_user_id(session)
            order = leagues.set_manual_pick_order(session, leagueId, userId, require_int_list(data, "user_ids"))
            return jsonify({"user_ids": order})

    @app.route('/api/leagues/<int:leagueId>/start-draft', methods=['POST'])
    def start_draft(leagueId):
        """
        Activate the league's draft: freezes a pick order for every upcoming race.
        ---
        tags:
          - Drafts
        parameters:
          - name: leagueId
            in: path
            type: integer
            required: true
            description: The ID of the league to activate.
        responses:
          200:
            description: The drafts that were created.
            schema:
              type: array
              items:
                properties:
                  race_id:
                    type: integer
                  pick_order:
                    type: array
                    items:
                      type: integer
          400:
            description: League not full, already active, or no upcoming races.
          403:
            description: Caller is not the league owner.
        """
        with Session() as session:
            userId = current_user_id(session)
            drafts = activation.activate_draft(session, leagueId, userId, notifier=notifier)
            return jsonify([{"id": draft.id, "race_id": draft.race_id, "pick_order": draft.pick_order,
                             "mirror_picks": draft.mirror_picks} for draft in drafts])

    @app.route('/api/leagues/<int:leagueId>/teams', methods=['GET'])
    def get_teams(leagueId):
        with Session() as session:
            return jsonify(teams.list_teams(session, leagueId))

    @app.route('/api/leagues/<int:leagueId>/teams', methods=['POST'])
    def create_team(leagueId):
        """
        Create a team with its initial members (owner only).
        ---
        tags:
          - Teams
        responses:
          201:
            description: Team created.
          400:
            description: Team distribution is not balanced or possible.
          409:
            description: A user is already on a team.
        """
        data = json_body()
        with Session() as session:
            userId = current_user_id(session)
            team = teams.create_team(session, leagueId, userId, data.get("name", ""),
                                     require_int_list(data, "user_ids"))
            return jsonify({"id": team.id, "name": team.name,
                            "members": sorted(member.user_id for member in team.members)}), 201

    @app.route('/api/teams/<int:teamId>/assign', methods=['POST'])
    def assign_user_to_team(teamId):
        data = json_body()
        with Session() as session:
            userId = current_user_id(session)
            team = teams.assign_user_to_team(session, teamId, userId, require_int(data, "user_id"))
            return jsonify({"id": team.id, "members": sorted(member.user_id for member in team.members)})

    @app.route('/api/teams/<int:teamId>/members/<int:memberId>', methods=['DELETE'])
    def remove_user_from_team(teamId, memberId):
        with Session() as session:
            userId = current_user_id(session)
            team = teams.remove_user_from_team(session, teamId, userId, memberId)
            return jsonify({"id": team.id, "members": sorted(member.user_id for member in team.members)})

    @app.route('/api/teams/<int:teamId>', methods=['DELETE'])
    def delete_team(teamId):
        with Session() as session:
            userId = current_user_id(session)
            teams.delete_team(session, teamId, userId)
            return jsonify({"status": "ok"})

    @app.route('/api/leagues/<int:leagueId>/draft/<int:raceId>', methods=['GET'])
    def get_race_draft(leagueId, raceId):
        """
        Retrieve the draft of a race: pick order, cursor and active picks.
        ---
        tags:
          - Drafts
        parameters:
          - name: leagueId
            in: path
            type: integer
            required: true
          - name: raceId
            in: path
            type: integer
            required: true
        responses:
          200:
            description: The draft record.
          404:
            description: Draft not found
        """
        with Session() as session:
            return jsonify(picks.get_draft_state(session, leagueId, raceId))

    @app.route('/api/leagues/<int:leagueId>/draft/<int:raceId>/pick-order', methods=['GET'])
    def get_pick_order(leagueId, raceId):
        with Session() as session:
            return jsonify(picks.get_pick_order(session, leagueId, raceId))

    @app.route('/api/leagues/<int:leagueId>/draft/<int:raceId>/deadlines', methods=['GET'])
    def get_deadlines(leagueId, raceId):
        """
        Retrieve the two pick deadlines of a race draft.
        ---
        tags:
          - Drafts
        responses:
          200:
            description: First-half deadline (FP1 - 36h) and second-half deadline (FP1).
          404:
            description: Draft not found
        """
        with Session() as session:
            get_draft(session, leagueId, raceId)
            race = get_race(session, raceId)
            return jsonify(require_deadlines(race, leagueId, settings).as_dict())

    @app.route('/api/leagues/<int:leagueId>/draft/<int:raceId>/pick', methods=['POST'])
    def make_pick(leagueId, raceId):
        """
        Pick a driver for the slot under the draft cursor.
        ---
        tags:
          - Drafts
        parameters:
          - name: body
            in: body
            required: true
            schema:
              properties:
                driver_id:
                  type: integer
        responses:
          200:
            description: Updated cursor, next user and picked/banned drivers.
          400:
            description: Draft complete, race started or driver banned.
          403:
            description: Not your turn.
          409:
            description: Driver already picked or pick already submitted.
        """
        data = json_body()
        with Session() as session:
            userId = current_user_id(session)
            result = picks.make_pick(session, leagueId, raceId, userId, require_int(data, "driver_id"),
                                     notifier=notifier, settings=settings)
            return jsonify(result.as_dict())

    @app.route('/api/leagues/<int:leagueId>/draft/<int:raceId>/ban', methods=['POST'])
    def ban_pick(leagueId, raceId):
        """
        Ban a prior pick; the turn returns to the banned slot.
        ---
        tags:
          - Drafts
        parameters:
          - name: body
            in: body
            required: true
            schema:
              properties:
                target_user_id:
                  type: integer
                driver_id:
                  type: integer
        responses:
          200:
            description: Updated cursor and picked/banned drivers.
          400:
            description: Bans disabled or no bans remaining.
          403:
            description: Ban target not allowed.
          404:
            description: Pick to ban not found.
        """
        data = json_body()
        with Session() as session:
            userId = current_user_id(session)
            result = bans.ban_pick(session, leagueId, raceId, userId, require_int(data, "target_user_id"),
                                   require_int(data, "driver_id"), notifier=notifier, settings=settings)
            return jsonify(result.as_dict())

    @app.route('/api/leagues/<int:leagueId>/autopick', methods=['GET'])
    def get_autopick(leagueId):
        with Session() as session:
            userId = current_user_id(session)
            return jsonify({"driver_ids": autopick.get_autopick_preference(session, leagueId, userId)})

    @app.route('/api/leagues/<int:leagueId>/autopick', methods=['PUT'])
    def put_autopick(leagueId):
        """
        Replace the caller's autopick preference list for a league.
        ---
        tags:
          - Autopick
        responses:
          200:
            description: The stored list.
        """
        data = json_body()
        with Session() as session:
            userId = current_user_id(session)
            order = autopick.upsert_autopick_preference(session, leagueId, userId,
                                                        require_int_list(data, "driver_ids"))
            return jsonify({"driver_ids": order})

    return app


if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=5000)  # Bind to all IPs
